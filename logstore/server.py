# logstore/server.py
"""
Run the API with uvicorn.

Env vars:
- HOST (default: 0.0.0.0)
- PORT (default: 3000)
"""
import os

import uvicorn

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))


def main() -> None:
    uvicorn.run("logstore.app:create_app", factory=True, host=HOST, port=PORT)


if __name__ == "__main__":
    main()
