"""
Device Resolver - Maps spoken device names to directory entries.

Problem it Solves:
=================
The interpreter hands us whatever the user said:
- "kitchen light"
- "the kitchen lights"
- "Kitchen Light"

We need to bind that to: Device(id="light-1", name="Kitchen Light")

Matching Policy (ordered, deterministic, case-insensitive):
===========================================================
1. Exact match on the full display name (or the device id)
2. Word match: every significant word of the phrase appears in the name
   (stop words ignored, simple plural folding)
3. More than one word match -> AmbiguousMatch with every survivor
4. Nothing survives -> NoMatch

There is no scoring and no guessing: the same phrase against the same
candidates always produces the same result. What to do with an
AmbiguousMatch (ask, pick first, fail) is up to the caller.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

from homepilot.models.device import Device

logger = logging.getLogger("homepilot.ai.device_resolver")


# Words that never identify a device
STOP_WORDS = frozenset({
    "the", "a", "an", "my", "our", "in", "on", "at", "of", "to", "please",
})

_WORD_RE = re.compile(r"[a-z0-9]+")


def normalize_name(name: str) -> str:
    """Lowercase and collapse whitespace."""
    return " ".join((name or "").lower().split())


def _fold(word: str) -> str:
    # "lights" -> "light", but leave short words like "tvs"/"bus" readable
    if len(word) > 3 and word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def significant_words(text: str) -> List[str]:
    """
    Split text into folded, lowercase words without stop words.

    Example:
        significant_words("the Kitchen Lights") -> ["kitchen", "light"]
    """
    words = _WORD_RE.findall((text or "").lower())
    return [_fold(w) for w in words if w not in STOP_WORDS]


def contains_all_words(phrase_words: Sequence[str], name: str) -> bool:
    """Whether every phrase word appears as a word of the device name."""
    if not phrase_words:
        return False
    name_words = set(significant_words(name))
    return all(word in name_words for word in phrase_words)


# ---------------------------------------------------------------------------
# RESOLUTION RESULTS
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResolvedDevice:
    """The phrase identified exactly one device."""
    phrase: str
    device: Device


@dataclass(frozen=True)
class AmbiguousMatch:
    """The phrase fits several devices, in candidate order."""
    phrase: str
    candidates: Tuple[Device, ...]

    @property
    def candidate_names(self) -> List[str]:
        return [device.name for device in self.candidates]


@dataclass(frozen=True)
class NoMatch:
    """No device fits the phrase."""
    phrase: str


Resolution = Union[ResolvedDevice, AmbiguousMatch, NoMatch]


class DeviceResolver:
    """
    Resolves a spoken device phrase against a set of candidate devices.

    Stateless: candidates are passed on every call, usually the current
    directory snapshot (optionally filtered to the user's selection).

    Usage:
        resolver = DeviceResolver()
        result = resolver.resolve("kitchen light", directory.devices)

        if isinstance(result, ResolvedDevice):
            print(f"Matched: {result.device.name}")
        elif isinstance(result, AmbiguousMatch):
            print(f"Which one? {result.candidate_names}")
    """

    def resolve(self, phrase: str, candidates: Sequence[Device]) -> Resolution:
        """
        Resolve a spoken phrase to a device.

        Args:
            phrase: Device name as spoken by the user
            candidates: Devices to match against

        Returns:
            ResolvedDevice, AmbiguousMatch or NoMatch
        """
        normalized = normalize_name(phrase)
        if not normalized or not candidates:
            logger.debug(f"Nothing to resolve for '{phrase}' ({len(candidates)} candidates)")
            return NoMatch(phrase=phrase)

        # 1. Exact name (or id) match
        exact = [
            device for device in candidates
            if normalize_name(device.name) == normalized or device.id.lower() == normalized
        ]
        if len(exact) == 1:
            logger.info(f"Resolved '{phrase}' to '{exact[0].name}' (exact)")
            return ResolvedDevice(phrase=phrase, device=exact[0])
        if len(exact) > 1:
            logger.info(f"'{phrase}' matches {len(exact)} devices with the same name")
            return AmbiguousMatch(phrase=phrase, candidates=tuple(exact))

        # 2. Every significant word present in the name
        words = significant_words(phrase)
        survivors = [device for device in candidates if contains_all_words(words, device.name)]

        if len(survivors) == 1:
            logger.info(f"Resolved '{phrase}' to '{survivors[0].name}'")
            return ResolvedDevice(phrase=phrase, device=survivors[0])

        # 3. Several survivors
        if survivors:
            logger.info(f"'{phrase}' is ambiguous: {[d.name for d in survivors]}")
            return AmbiguousMatch(phrase=phrase, candidates=tuple(survivors))

        # 4. Nothing
        logger.info(f"No device matches '{phrase}'")
        return NoMatch(phrase=phrase)


# ---------------------------------------------------------------------------
# SINGLETON INSTANCE
# ---------------------------------------------------------------------------
device_resolver = DeviceResolver()
