"""Run the API with uvicorn for local development."""

import os

import uvicorn

if __name__ == "__main__":
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("tokenvault.main:app", host=host, port=port)
