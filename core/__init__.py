"""core/ -- Process configuration. Imports nothing from api/ or auth/."""
