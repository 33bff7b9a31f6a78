"""AI layer: language-model providers, prompts and intent handling."""
