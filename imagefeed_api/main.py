"""
imagefeed API
Pixabay image feed with a single-flight image cache.
"""

import asyncio
import time
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.responses import ORJSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from imagefeed.endpoints.images import ImageHit
from imagefeed.errors import FetchError
from imagefeed.feed_session import FeedSession
from imagefeed.session_pool import SessionPool
from imagefeed.tag_counter import AnyTagCounter, get_tag_counter, perform_tag_burst

from . import telemetry
from .cache import ImageCacheManager, is_fetchable_url


# Response models
class APIResponse(BaseModel):
    success: bool
    data: Optional[dict | list] = None
    error: Optional[str] = None
    meta: dict = {}


# Globals
session_pool: Optional[SessionPool] = None
cache_mgr: Optional[ImageCacheManager] = None
feed: Optional[FeedSession] = None
tag_counter: Optional[AnyTagCounter] = None


def _require(component, name: str):
    if component is None:
        raise HTTPException(status_code=503, detail=f"{name} not initialized")
    return component


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    global session_pool, cache_mgr, feed, tag_counter

    print("Starting imagefeed API...")

    session_pool = SessionPool()
    cache_mgr = ImageCacheManager(session_pool=session_pool)
    await cache_mgr.connect()

    tag_counter = await get_tag_counter()
    feed = FeedSession(session_pool=session_pool)

    # First page up front; the API still starts if Pixabay is unreachable
    try:
        images = await feed.fetch_next_page()
        print(f"[feed] Loaded {len(images)} images")
    except FetchError as e:
        print(f"[feed] Initial fetch failed: {e}")

    yield

    print("Shutting down imagefeed API...")
    if tag_counter:
        await tag_counter.close()
    if cache_mgr:
        await cache_mgr.close()


app = FastAPI(
    title="imagefeed API",
    description="Paginated Pixabay image feed served through a single-flight image cache.",
    version="0.1.0",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def _image_dicts(images: list[ImageHit]) -> list[dict]:
    counter = _require(tag_counter, "Tag counter")
    counts = await asyncio.gather(*(counter.get(img.id) for img in images))
    return [{**img.to_dict(), "tag_count": count} for img, count in zip(images, counts)]


async def _feed_response(images: list[ImageHit], start_time: float) -> APIResponse:
    session = _require(feed, "Feed")
    total_time = (time.perf_counter() - start_time) * 1000
    return APIResponse(
        success=True,
        data=await _image_dicts(images),
        meta={
            "response_time_ms": round(total_time, 1),
            "count": len(images),
            "next_page": session.page,
            "is_fetching": session.is_fetching,
        },
    )


def _image_or_404(image_id: int) -> ImageHit:
    image = _require(feed, "Feed").get_image(image_id)
    if image is None:
        raise HTTPException(status_code=404, detail=f"Image {image_id} not found")
    return image


async def _serve_image(url: str) -> Response:
    """Resolve `url` through the image cache and return its bytes."""
    mgr = _require(cache_mgr, "Image cache")
    request_id = telemetry.new_request_id()
    token = telemetry.start_request(request_id)
    cache_layer = "error"
    try:
        with telemetry.stage("image_cache"):
            try:
                image, cache_layer = await mgr.resolve(url)
            except FetchError as e:
                raise HTTPException(status_code=502, detail=str(e))

        response = Response(content=image.data, media_type=image.content_type)
        response.headers["X-Cache-Layer"] = cache_layer
        response.headers["X-Cache-Hit"] = "1" if cache_layer != "live" else "0"
        response.headers["X-Image-Size"] = f"{image.width}x{image.height}"
        response.headers["X-Request-Id"] = request_id
        response.headers["Server-Timing"] = telemetry.server_timing_header()
        return response
    finally:
        telemetry.finish_request(token, url=url, cache_layer=cache_layer)


@app.get("/")
async def root():
    return {
        "name": "imagefeed API",
        "version": "0.1.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "image_cache": cache_mgr.stats() if cache_mgr else None,
        "tag_counter": tag_counter.backend if tag_counter else None,
        "feed_images": len(feed.images) if feed else 0,
        "feed_error": feed.error_message if feed else "",
    }


# ── Feed Endpoints ──────────────────────────────────────────


@app.get("/v1/feed", response_model=APIResponse)
async def get_feed():
    """Current page of images."""
    start_time = time.perf_counter()
    session = _require(feed, "Feed")
    return await _feed_response(list(session.images), start_time)


@app.post("/v1/feed/next", response_model=APIResponse)
async def next_page():
    """Replace the feed with the next page."""
    start_time = time.perf_counter()
    session = _require(feed, "Feed")
    try:
        images = await session.fetch_next_page()
    except FetchError:
        raise HTTPException(status_code=502, detail=session.error_message)
    return await _feed_response(images, start_time)


@app.post("/v1/feed/refresh", response_model=APIResponse)
async def refresh_feed():
    start_time = time.perf_counter()
    session = _require(feed, "Feed")
    try:
        images = await session.refresh()
    except FetchError:
        raise HTTPException(status_code=502, detail=session.error_message)
    return await _feed_response(images, start_time)


@app.post("/v1/feed/random", response_model=APIResponse)
async def random_feed():
    """A few images from each random category."""
    start_time = time.perf_counter()
    session = _require(feed, "Feed")
    try:
        images = await session.fetch_random()
    except FetchError:
        raise HTTPException(status_code=502, detail=session.error_message)
    return await _feed_response(images, start_time)


# ── Image Endpoints ─────────────────────────────────────────


@app.get("/v1/images/{image_id}", response_model=APIResponse)
async def get_image(image_id: int):
    image = _image_or_404(image_id)
    data = await _image_dicts([image])
    return APIResponse(success=True, data=data[0])


@app.get("/v1/images/{image_id}/raw")
async def get_image_raw(image_id: int):
    """Image bytes, downloaded once per distinct URL."""
    image = _image_or_404(image_id)
    return await _serve_image(image.image_url)


@app.get("/v1/proxy")
async def proxy_image(url: str = Query(..., description="Absolute http(s) image URL")):
    if not is_fetchable_url(url):
        raise HTTPException(status_code=400, detail="url must be an absolute http(s) URL")
    return await _serve_image(url)


@app.post("/v1/images/{image_id}/tags/burst", response_model=APIResponse)
async def tag_burst(
    image_id: int,
    increments: int = Query(default=3000, ge=0, le=100_000),
    decrements: int = Query(default=1000, ge=0, le=100_000),
):
    """Fire many concurrent tag increments/decrements at one image."""
    image = _image_or_404(image_id)
    counter = _require(tag_counter, "Tag counter")
    start_time = time.perf_counter()

    count = await perform_tag_burst(counter, image.id, increments, decrements)
    total_time = (time.perf_counter() - start_time) * 1000
    print(f"[tags] Tag count for image from {image.user}: {count}")

    return APIResponse(
        success=True,
        data={"id": image.id, "user": image.user, "tag_count": count},
        meta={
            "response_time_ms": round(total_time, 1),
            "increments": increments,
            "decrements": decrements,
        },
    )


# Run with: uvicorn imagefeed_api.main:app --reload
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("imagefeed_api.main:app", host="0.0.0.0", port=8000, reload=True)
