# miles/routers/images.py
"""Image proxy — GET /img?url=... serves alert images through a short-lived cache."""

from typing import Optional
from fastapi import APIRouter, HTTPException, Response
from miles.services.image_proxy import InvalidImageUrl, UpstreamFetchError, image_cache

router = APIRouter()

CLIENT_CACHE_CONTROL = "public, max-age=60"


@router.get("/img", summary="Proxy and cache a remote image")
async def proxy_image(url: Optional[str] = None):
    try:
        image = await image_cache.get(url)
    except InvalidImageUrl as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UpstreamFetchError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return Response(
        content=image.body,
        media_type=image.content_type,
        headers={"Cache-Control": CLIENT_CACHE_CONTROL},
    )
