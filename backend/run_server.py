"""Run the API with uvicorn. HOST, PORT and LOG_LEVEL come from the environment."""
import os

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "shopbill.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
