"""HomePilot - voice command interpretation and smart home device orchestration."""
