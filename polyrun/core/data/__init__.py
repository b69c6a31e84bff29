"""Static catalogs: built-in toolchain presets."""
