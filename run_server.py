import os

import uvicorn

from reputation.observability import configure_logging

if __name__ == "__main__":
    configure_logging(os.environ.get("REPUTATION_LOG_LEVEL", "INFO"))

    print("Starting Reputation Read API...")
    print("Docs available at: http://localhost:8000/docs")

    uvicorn.run(
        "reputation.api.server:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
