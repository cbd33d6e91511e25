"""Transform presets and host delegation instructions."""
