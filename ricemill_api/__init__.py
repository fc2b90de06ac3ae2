"""HTTP layer (FastAPI) for the rice-mill ledgers."""
