"""
photomask photo service

Run this script to start the FastAPI server.
"""

import uvicorn

from photomask.config import LOGGING_CONFIG


def main():
    """Start the API server."""
    print("Starting photomask photo service...")
    print("Server will be available at: http://localhost:8000")
    print("API documentation: http://localhost:8000/docs")

    uvicorn.run(
        "photomask.api:app",
        host="0.0.0.0",
        port=8000,
        reload=True,  # Enable auto-reload during development
        log_config=LOGGING_CONFIG,
    )


if __name__ == "__main__":
    main()
