# backend/docmerge/api/merge.py
from __future__ import annotations

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from ..core.errors import UserFacingError
from ..pipeline.orchestrator import MergePipeline
from ..schemas.merge import ErrorResponse, MergeResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["merge"])


def get_pipeline(request: Request) -> MergePipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise RuntimeError("merge pipeline is not configured")
    return pipeline


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message).model_dump(),
    )


async def _read(upload: Optional[UploadFile]) -> Optional[bytes]:
    if upload is None:
        return None
    return await upload.read()


@router.post(
    "/merge",
    response_model=MergeResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def merge(
    template: Optional[UploadFile] = File(None),
    datafile: Optional[UploadFile] = File(None),
    outputType: Optional[str] = Form(None),
    pipeline: MergePipeline = Depends(get_pipeline),
) -> Union[MergeResponse, JSONResponse]:
    try:
        result = await pipeline.run(
            template_name=template.filename if template is not None else None,
            template_bytes=await _read(template),
            data_bytes=await _read(datafile),
            output_type=outputType,
        )
    except UserFacingError as e:
        if e.status_code < 500:
            logger.info("merge rejected: %s", e.code)
            return _error(e.status_code, e.message)
        logger.error("merge failed at %s: %s (%s)", e.stage, e.message, e.code)
        return _error(e.status_code, f"Error: {e.message}")
    except Exception as e:  # noqa: BLE001
        logger.exception("merge failed: %s", e)
        return _error(500, f"Error: {e}")

    return MergeResponse.from_result(result)
