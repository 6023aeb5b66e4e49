import asyncio

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response

# Local target for trying the poker out: uvicorn backend:app --port 8001
app = FastAPI()


@app.api_route("/status/{code}", methods=["GET", "POST"])
async def status(code: int):
    if not 200 <= code <= 599:
        raise HTTPException(status_code=422, detail="status code must be between 200 and 599")
    if code in (204, 304):
        return Response(status_code=code)
    return JSONResponse({"status": code}, status_code=code)


@app.api_route("/delay/{seconds}", methods=["GET", "POST"])
async def delay(seconds: float):
    await asyncio.sleep(seconds)
    return {"slept": seconds}


@app.api_route("/{path:path}", methods=["GET", "POST"])
async def catch_all(path: str, request: Request):
    body = await request.body()
    return {
        "message": "Hello from backend server!",
        "path": path,
        "method": request.method,
        "query": dict(request.query_params),
        "headers": dict(request.headers),
        "body": body.decode("utf-8", errors="replace"),
    }
