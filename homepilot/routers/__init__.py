"""
Routers module - API endpoint handlers organized by feature.

- intent: voice command processing
- devices: device list, sync, refresh and selection
"""
