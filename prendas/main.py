from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prendas.config import logger

from .routers import router

# Initialize FastAPI application
app = FastAPI(
    title="Prendas Try-On API",
    description="Asynchronous virtual try-on of garments on a mannequin",
    version="1.0.0",
)

app.include_router(router)


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


logger.info("Prendas Try-On API initialized successfully")
