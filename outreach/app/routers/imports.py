"""API router for bulk contact imports."""

from __future__ import annotations

import base64
import binascii
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..security import get_current_user
from ..services import (
    ImportFileError,
    ImportGroupNotFoundError,
    ImportPolicyError,
    ImportService,
)

router = APIRouter()


def _decode_content(payload: schemas.ClientImportRequest) -> bytes:
    if payload.content_encoding is schemas.ContentEncoding.BASE64:
        try:
            return base64.b64decode(payload.content, validate=True)
        except (ValueError, binascii.Error) as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="The file content is not valid base64.",
            ) from exc
    return payload.content.encode("utf-8")


@router.post("/clients", response_model=schemas.ImportResult)
def import_clients(
    payload: schemas.ClientImportRequest,
    group_id: str = Query(..., description="Destination group"),
    config_id: Optional[str] = Query(None, description="Saved config id or template_<key>"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ImportResult:
    content = _decode_content(payload)
    try:
        return ImportService.import_clients(
            db,
            content=content,
            filename=payload.filename,
            group_id=group_id,
            user_id=current_user.id,
            config_id=config_id,
        )
    except ImportFileError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ImportGroupNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ImportPolicyError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
