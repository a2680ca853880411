"""API router for saved import configurations and presets."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..security import get_current_user
from ..services import ImportConfigError, ImportConfigNotFoundError, ImportConfigService

router = APIRouter()


@router.get("", response_model=schemas.ImportConfigListResponse)
def list_import_configs(
    include_templates: bool = Query(True, description="Include built-in presets"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ImportConfigListResponse:
    configs = ImportConfigService.list_configs(db, current_user.id)
    templates = ImportConfigService.list_templates() if include_templates else []
    return schemas.ImportConfigListResponse(configs=configs, templates=templates)


@router.get("/templates", response_model=list[schemas.ImportConfigTemplate])
def list_import_templates() -> list[schemas.ImportConfigTemplate]:
    return ImportConfigService.list_templates()


@router.post(
    "/templates/{key}",
    response_model=schemas.ImportConfig,
    status_code=status.HTTP_201_CREATED,
)
def create_import_config_from_template(
    key: str,
    payload: Optional[schemas.TemplateInstantiateRequest] = Body(None),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ImportConfig:
    try:
        return ImportConfigService.create_from_template(
            db, key, current_user.id, name=payload.name if payload else None
        )
    except ImportConfigNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.post("", response_model=schemas.ImportConfig, status_code=status.HTTP_201_CREATED)
def create_import_config(
    payload: schemas.ImportConfigCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ImportConfig:
    return ImportConfigService.create_config(db, current_user.id, payload)


@router.get("/{config_id}", response_model=schemas.ImportConfig)
def get_import_config(
    config_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ImportConfig:
    config = ImportConfigService.get_config(db, config_id, current_user.id)
    if config is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Import config not found")
    return config


@router.put("/{config_id}", response_model=schemas.ImportConfig)
def update_import_config(
    config_id: str,
    payload: schemas.ImportConfigUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ImportConfig:
    try:
        return ImportConfigService.update_config(db, config_id, current_user.id, payload)
    except ImportConfigNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ImportConfigError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.delete("/{config_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_import_config(
    config_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> None:
    if not ImportConfigService.delete_config(db, config_id, current_user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Import config not found")
