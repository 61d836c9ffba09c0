"""API tests: the FastAPI app over an in-memory database"""
