#!/usr/bin/env python3
"""Simple script to run the Control File Import API"""
import uvicorn

if __name__ == "__main__":
    uvicorn.run("control_importer.api:app", host="0.0.0.0", port=8000, reload=True)
