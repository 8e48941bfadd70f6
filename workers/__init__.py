"""Background workers started by the API lifespan."""
