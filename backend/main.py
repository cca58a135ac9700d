import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from codeui.logger import get_logger
from codeui.routes import router

logger = get_logger(__name__)

app = FastAPI(title="CodeUI API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.APP_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


if __name__ == "__main__":
    logger.info(f"Starting CodeUI API on port {config.PORT}")
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
