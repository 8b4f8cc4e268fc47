"""Rendered video download endpoint."""

from pathlib import Path

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse

from animation_engine.config import settings

router = APIRouter(prefix="/videos", tags=["Videos"])


@router.get(
    "/{filename}",
    summary="Get video",
    description="Stream a rendered animation video.",
    response_class=FileResponse,
)
async def get_video(filename: str) -> FileResponse:
    # Only bare file names inside the output directory
    if Path(filename).name != filename or not filename.endswith(".mp4"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid video name")

    path = settings.video_output_dir / filename
    if not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")

    return FileResponse(path, media_type="video/mp4", filename=filename)
