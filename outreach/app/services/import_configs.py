"""Storage, presets and resolution of import configurations."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..schemas import (
    DuplicateAction,
    ErrorHandling,
    MatchCriteria,
    NewClientStatus,
    NoDuplicateAction,
    SearchScope,
)
from .import_errors import ImportConfigError, ImportConfigNotFoundError

LOGGER = logging.getLogger(__name__)

TEMPLATE_PREFIX = "template_"
POLICY_SECTIONS = {
    "search_scope",
    "duplicate_action",
    "no_duplicate_action",
    "validation",
    "additional",
}

_SKIP_ON_ERROR = schemas.ValidationConfig(
    require_name=False,
    require_phone=True,
    require_region=False,
    error_handling=ErrorHandling.SKIP,
)
_NEW_STATUS = schemas.AdditionalConfig(
    new_client_status=NewClientStatus.NEW,
    update_status=False,
)


def _template(
    name: str,
    description: str,
    *,
    scopes: list[SearchScope],
    default_action: DuplicateAction,
    no_duplicate_action: NoDuplicateAction,
    update_name: bool = False,
    add_phones: bool = False,
    add_to_group: bool = False,
    is_default: bool = False,
) -> schemas.ImportConfigBase:
    return schemas.ImportConfigBase(
        name=name,
        description=description,
        is_default=is_default,
        search_scope=schemas.SearchScopeConfig(scopes=scopes, match_criteria=MatchCriteria.PHONE),
        duplicate_action=schemas.DuplicateActionConfig(
            default_action=default_action,
            update_name=update_name,
            update_region=False,
            add_phones=add_phones,
            add_to_group=add_to_group,
            move_to_group=False,
        ),
        no_duplicate_action=no_duplicate_action,
        validation=_SKIP_ON_ERROR,
        additional=_NEW_STATUS,
    )


PRESET_TEMPLATES: dict[str, schemas.ImportConfigBase] = {
    "full_import": _template(
        "Полный импорт",
        "Импорт без проверки дубликатов. Все клиенты создаются как новые.",
        scopes=[SearchScope.NONE],
        default_action=DuplicateAction.CREATE,
        no_duplicate_action=NoDuplicateAction.CREATE,
        is_default=True,
    ),
    "group_search": _template(
        "Поиск в группе",
        "Поиск дубликатов только в выбранной группе. Обновление существующих, создание новых.",
        scopes=[SearchScope.CURRENT_GROUP],
        default_action=DuplicateAction.UPDATE,
        no_duplicate_action=NoDuplicateAction.CREATE,
        update_name=True,
        add_phones=True,
    ),
    "owner_search": _template(
        "Поиск по всем клиентам",
        "Поиск дубликатов среди всех клиентов владельца. Обновление существующих, создание новых.",
        scopes=[SearchScope.OWNER_GROUPS],
        default_action=DuplicateAction.UPDATE,
        no_duplicate_action=NoDuplicateAction.CREATE,
        update_name=True,
        add_phones=True,
        add_to_group=True,
    ),
    "smart_import": _template(
        "Умный импорт",
        "Добавляет существующих клиентов в группу, обновляет данные, создает новых.",
        scopes=[SearchScope.OWNER_GROUPS],
        default_action=DuplicateAction.UPDATE,
        no_duplicate_action=NoDuplicateAction.CREATE,
        update_name=True,
        add_phones=True,
        add_to_group=True,
    ),
    "update_only": _template(
        "Только обновление",
        "Обновляет только существующих клиентов. Новые не создаются.",
        scopes=[SearchScope.OWNER_GROUPS],
        default_action=DuplicateAction.UPDATE,
        no_duplicate_action=NoDuplicateAction.SKIP,
        update_name=True,
        add_phones=True,
    ),
    "create_only": _template(
        "Только новые",
        "Создает только новых клиентов. Существующие пропускаются.",
        scopes=[SearchScope.OWNER_GROUPS],
        default_action=DuplicateAction.SKIP,
        no_duplicate_action=NoDuplicateAction.CREATE,
    ),
}


def get_default_import_config(user_id: Optional[str] = None) -> schemas.ImportConfig:
    """Built-in configuration used when the user has not saved a default."""

    return schemas.ImportConfig(
        name="Новая конфигурация",
        description="",
        user_id=user_id,
        is_default=False,
        search_scope=schemas.SearchScopeConfig(
            scopes=[SearchScope.OWNER_GROUPS], match_criteria=MatchCriteria.PHONE
        ),
        duplicate_action=schemas.DuplicateActionConfig(
            default_action=DuplicateAction.UPDATE,
            update_name=True,
            update_region=False,
            add_phones=True,
            add_to_group=True,
            move_to_group=False,
        ),
        no_duplicate_action=NoDuplicateAction.CREATE,
        validation=_SKIP_ON_ERROR,
        additional=_NEW_STATUS,
    )


def template_id(key: str) -> str:
    return f"{TEMPLATE_PREFIX}{key}"


def _policy_payload(config: schemas.ImportConfigBase) -> dict:
    return config.model_dump(mode="json", by_alias=True, include=POLICY_SECTIONS)


class ImportConfigService:
    """Encapsulates CRUD operations for saved import configurations."""

    @staticmethod
    def _to_schema(record: models.ImportConfigRecord) -> schemas.ImportConfig:
        identity = {
            "id": record.id,
            "user_id": record.user_id,
            "name": record.name,
            "description": record.description,
            "is_default": bool(record.is_default),
            "created_at": record.created_at,
            "updated_at": record.updated_at,
        }
        try:
            return schemas.ImportConfig.model_validate({**(record.config or {}), **identity})
        except ValidationError as exc:
            LOGGER.error("Stored import config %s is invalid, using defaults: %s", record.id, exc)
            fallback = get_default_import_config(record.user_id)
            return fallback.model_copy(update=identity)

    @staticmethod
    def _query_user_configs(db: Session, user_id: str):
        return db.query(models.ImportConfigRecord).filter(
            models.ImportConfigRecord.user_id == user_id
        )

    @staticmethod
    def _clear_defaults(db: Session, user_id: str, *, keep_id: Optional[str] = None) -> None:
        query = ImportConfigService._query_user_configs(db, user_id).filter(
            models.ImportConfigRecord.is_default.is_(True)
        )
        if keep_id is not None:
            query = query.filter(models.ImportConfigRecord.id != keep_id)
        query.update({models.ImportConfigRecord.is_default: False}, synchronize_session="fetch")

    @staticmethod
    def list_templates() -> list[schemas.ImportConfigTemplate]:
        return [
            schemas.ImportConfigTemplate(
                id=template_id(key), name=template.name, description=template.description
            )
            for key, template in PRESET_TEMPLATES.items()
        ]

    @staticmethod
    def get_template(identifier: str) -> Optional[schemas.ImportConfig]:
        """Return the preset named by its key or by its ``template_`` id."""

        key = identifier[len(TEMPLATE_PREFIX):] if identifier.startswith(TEMPLATE_PREFIX) else identifier
        template = PRESET_TEMPLATES.get(key)
        if template is None:
            return None
        return schemas.ImportConfig(id=template_id(key), **template.model_dump())

    @staticmethod
    def list_configs(db: Session, user_id: str) -> list[schemas.ImportConfig]:
        records = (
            ImportConfigService._query_user_configs(db, user_id)
            .order_by(
                models.ImportConfigRecord.is_default.desc(),
                models.ImportConfigRecord.created_at.desc(),
            )
            .all()
        )
        return [ImportConfigService._to_schema(record) for record in records]

    @staticmethod
    def get_config(db: Session, config_id: str, user_id: str) -> Optional[schemas.ImportConfig]:
        if config_id.startswith(TEMPLATE_PREFIX):
            return ImportConfigService.get_template(config_id)
        record = (
            ImportConfigService._query_user_configs(db, user_id)
            .filter(models.ImportConfigRecord.id == config_id)
            .first()
        )
        return ImportConfigService._to_schema(record) if record is not None else None

    @staticmethod
    def get_default_config(db: Session, user_id: str) -> Optional[schemas.ImportConfig]:
        """Return the user's default, repairing duplicates by keeping the newest."""

        defaults = (
            ImportConfigService._query_user_configs(db, user_id)
            .filter(models.ImportConfigRecord.is_default.is_(True))
            .order_by(
                models.ImportConfigRecord.created_at.desc(),
                models.ImportConfigRecord.id.desc(),
            )
            .all()
        )
        if not defaults:
            return None
        newest = defaults[0]
        if len(defaults) > 1:
            LOGGER.warning(
                "User %s has %s default import configs; keeping %s",
                user_id,
                len(defaults),
                newest.id,
            )
            ImportConfigService._clear_defaults(db, user_id, keep_id=newest.id)
            db.commit()
        return ImportConfigService._to_schema(newest)

    @staticmethod
    def create_config(
        db: Session, user_id: str, data: schemas.ImportConfigBase
    ) -> schemas.ImportConfig:
        if data.is_default:
            ImportConfigService._clear_defaults(db, user_id)
        record = models.ImportConfigRecord(
            user_id=user_id,
            name=data.name.strip(),
            description=data.description,
            is_default=data.is_default,
            config=_policy_payload(data),
        )
        db.add(record)
        db.commit()
        db.refresh(record)
        LOGGER.info("Import config %s (%r) created for user %s", record.id, record.name, user_id)
        return ImportConfigService._to_schema(record)

    @staticmethod
    def update_config(
        db: Session,
        config_id: str,
        user_id: str,
        data: schemas.ImportConfigUpdate,
    ) -> schemas.ImportConfig:
        record = (
            ImportConfigService._query_user_configs(db, user_id)
            .filter(models.ImportConfigRecord.id == config_id)
            .first()
        )
        if record is None:
            raise ImportConfigNotFoundError(f"Import config {config_id} not found")

        current = ImportConfigService._to_schema(record)
        changes = {field: getattr(data, field) for field in data.model_fields_set}
        try:
            merged = schemas.ImportConfigBase.model_validate(
                {**current.model_dump(include=set(schemas.ImportConfigBase.model_fields)), **changes}
            )
        except ValidationError as exc:
            raise ImportConfigError(f"Invalid import config: {exc}") from exc

        if merged.is_default:
            ImportConfigService._clear_defaults(db, user_id, keep_id=record.id)
        record.name = merged.name.strip()
        record.description = merged.description
        record.is_default = merged.is_default
        record.config = _policy_payload(merged)
        db.add(record)
        db.commit()
        db.refresh(record)
        LOGGER.info("Import config %s updated for user %s", record.id, user_id)
        return ImportConfigService._to_schema(record)

    @staticmethod
    def delete_config(db: Session, config_id: str, user_id: str) -> bool:
        record = (
            ImportConfigService._query_user_configs(db, user_id)
            .filter(models.ImportConfigRecord.id == config_id)
            .first()
        )
        if record is None:
            return False
        db.delete(record)
        db.commit()
        LOGGER.info("Import config %s deleted for user %s", config_id, user_id)
        return True

    @staticmethod
    def create_from_template(
        db: Session, key: str, user_id: str, name: Optional[str] = None
    ) -> schemas.ImportConfig:
        template = ImportConfigService.get_template(key)
        if template is None:
            raise ImportConfigNotFoundError(f"Import template {key!r} not found")
        payload = schemas.ImportConfigBase.model_validate(
            {
                **template.model_dump(include=set(schemas.ImportConfigBase.model_fields)),
                "name": name or template.name,
            }
        )
        return ImportConfigService.create_config(db, user_id, payload)

    @staticmethod
    def resolve_for_import(
        db: Session, user_id: str, config_id: Optional[str] = None
    ) -> schemas.ImportConfig:
        """Pick the configuration an import runs with.

        An explicit id wins when it exists; otherwise the user's default and
        finally the built-in default are used.
        """

        if config_id:
            config = ImportConfigService.get_config(db, config_id, user_id)
            if config is not None:
                return config
            LOGGER.warning("Import config %s not found for user %s, using default", config_id, user_id)
        default = ImportConfigService.get_default_config(db, user_id)
        return default or get_default_import_config(user_id)


__all__ = [
    "ImportConfigService",
    "PRESET_TEMPLATES",
    "TEMPLATE_PREFIX",
    "get_default_import_config",
    "template_id",
]
