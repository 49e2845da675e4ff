"""Core building blocks shared by the vault domains."""
