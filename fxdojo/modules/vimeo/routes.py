# fxdojo/modules/vimeo/routes.py
from fastapi import APIRouter, Depends, HTTPException, Query, status

from fxdojo.integrations.vimeo.client import (
    VimeoClient,
    VimeoError,
    VIMEO_URL_PATTERN,
    get_vimeo_client,
)

router = APIRouter(prefix="/vimeo", tags=["vimeo"])


@router.get("/oembed")
def vimeo_oembed(
    url: str = Query(..., min_length=1),
    client: VimeoClient = Depends(get_vimeo_client),
):
    match = VIMEO_URL_PATTERN.match(url.strip())
    if not match:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid Vimeo URL",
        )

    try:
        return client.get_oembed(match.group(1))
    except VimeoError:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to fetch Vimeo data",
        )
