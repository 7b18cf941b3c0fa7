#!/usr/bin/env python3
import uvicorn
from gearshare.app import app
from gearshare.configs import HOST, PORT, LOG_LEVEL

if __name__ == "__main__":
    print(f"Starting uvicorn server on {HOST}:{PORT}...")
    uvicorn.run(app, host=HOST, port=PORT, log_level=LOG_LEVEL)
