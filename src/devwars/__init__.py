"""DevWars API: user accounts, profiles and game applications."""
