#!/usr/bin/env python3

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from shelfshare.routes import api
from shelfshare.configs import OPTIONS, CORS_ORIGINS
from shelfshare.core import db
from shelfshare.core.exceptions import ShelfshareAPIError
from shelfshare import __version__ as VERSION

app = FastAPI(
    title="Shelfshare API",
    description="Shelfshare: lend books to friends and give them away to good homes",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ShelfshareAPIError)
async def shelfshare_error_handler(request: Request, exc: ShelfshareAPIError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(api.router, prefix="/v1/api")

db.init()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("shelfshare.app:app", **OPTIONS)
