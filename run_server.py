"""
Wrapper script for running the server directly or under a profiler.

Equivalent to ``connhub serve``.
"""

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("connhub:application", factory=True, host="0.0.0.0", port=8000)
