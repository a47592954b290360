"""OTA Spaces Portal service package."""
