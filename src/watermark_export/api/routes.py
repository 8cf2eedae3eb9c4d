from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from ..core.factories import ServiceContext
from ..core.logging_config import get_logger
from ..core.models import ExportArchive, WatermarkConfigRequest
from .deps import get_context, get_current_user

router = APIRouter()
logger = get_logger("watermark-export.api")

NO_STORE = "no-store"
NO_CACHE = "no-cache, no-store, must-revalidate"


def zip_response(archive: ExportArchive) -> Response:
    return Response(
        content=archive.content,
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{archive.filename}"',
            "Cache-Control": NO_STORE,
        },
    )


@router.get("/collections/{collection_id}/download", tags=["Export"])
async def download_batch(
    collection_id: str,
    batch: int = Query(1),
    size: Optional[int] = Query(None),
    user_id: str = Depends(get_current_user),
    context: ServiceContext = Depends(get_context),
):
    logger.info(f"Batch export requested: collection={collection_id} batch={batch} size={size}")
    archive = await context.exports.export_batch(collection_id, user_id, batch, size=size)
    return zip_response(archive)


@router.get("/collections/{collection_id}/chunked-download", tags=["Export"])
async def download_chunk(
    collection_id: str,
    chunk: int = Query(0),
    total_chunks: Optional[int] = Query(None, alias="totalChunks"),
    user_id: str = Depends(get_current_user),
    context: ServiceContext = Depends(get_context),
):
    logger.info(
        f"Chunk export requested: collection={collection_id} chunk={chunk} totalChunks={total_chunks}"
    )
    archive = await context.exports.export_chunk(
        collection_id, user_id, chunk, total_chunks_hint=total_chunks
    )
    return zip_response(archive)


@router.get("/collections/{collection_id}/size", tags=["Export"])
async def collection_size(
    collection_id: str,
    user_id: str = Depends(get_current_user),
    context: ServiceContext = Depends(get_context),
):
    plan = await context.sizes.plan(collection_id, user_id)
    return plan.to_wire()


@router.get("/collections/{collection_id}/photos/{photo_id}/watermarked", tags=["Export"])
async def watermarked_photo(
    collection_id: str,
    photo_id: str,
    user_id: str = Depends(get_current_user),
    context: ServiceContext = Depends(get_context),
):
    filename, data = await context.previews.render(collection_id, photo_id, user_id)
    return Response(
        content=data,
        media_type="image/jpeg",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": NO_CACHE,
            "Pragma": "no-cache",
            "Expires": "0",
        },
    )


@router.post("/collections/{collection_id}/watermark", tags=["Watermark"])
async def save_watermark_config(
    collection_id: str,
    payload: WatermarkConfigRequest,
    user_id: str = Depends(get_current_user),
    context: ServiceContext = Depends(get_context),
):
    config = await context.watermark_configs.save(collection_id, user_id, payload)
    return config.to_wire()


@router.get("/collections/{collection_id}/watermark", tags=["Watermark"])
async def get_watermark_config(
    collection_id: str,
    user_id: str = Depends(get_current_user),
    context: ServiceContext = Depends(get_context),
):
    config = await context.watermark_configs.get(collection_id, user_id)
    return config.to_wire()


@router.delete("/collections/{collection_id}/watermark", tags=["Watermark"])
async def delete_watermark_config(
    collection_id: str,
    user_id: str = Depends(get_current_user),
    context: ServiceContext = Depends(get_context),
):
    await context.watermark_configs.delete(collection_id, user_id)
    return {"success": True}


@router.get("/account/watermarked-collections", tags=["Account"])
async def watermarked_collections(
    user_id: str = Depends(get_current_user),
    context: ServiceContext = Depends(get_context),
):
    summaries = await context.collection_views.watermarked_collections(user_id)
    return [summary.to_wire() for summary in summaries]
