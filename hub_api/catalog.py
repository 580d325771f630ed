import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hub_api.errors import AccountNotFound, InternalError, ProjectVersionAlreadyExists
from hub_api.models import Account, Project

logger = logging.getLogger(__name__)


def search_projects(db: Session, query: str) -> List[Dict[str, Any]]:
    statement = (
        select(Account.login, Project.name, Project.version, Project.description)
        .join(Project.owner)
        .where(Project.name.contains(query, autoescape=True))
    )
    try:
        rows = db.execute(statement).all()
    except SQLAlchemyError as exc:
        logger.error("can not find projects, query: %s, reason: %s", query, exc)
        raise InternalError("failed to find project") from exc
    return [
        {"login": login, "name": name, "version": version, "description": description}
        for login, name, version, description in rows
    ]


def insert_project(db: Session, login: str, name: str, version: str, description: Optional[str]) -> Project:
    try:
        owner = db.execute(select(Account).where(Account.login == login)).scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.warning("can not get user, login: %s, reason: %s", login, exc)
        raise InternalError() from exc
    if owner is None:
        logger.warning("user not found, login: %s", login)
        raise AccountNotFound()

    project = Project(user_id=owner.id, name=name, version=version, description=description)
    db.add(project)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning(
            "can not create new user project, login: %s, name: %s, version: %s, reason: already exists",
            login,
            name,
            version,
        )
        raise ProjectVersionAlreadyExists(f"{name} {version}") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "can not create user project, login: %s, name: %s, version: %s, reason: %s",
            login,
            name,
            version,
            exc,
        )
        raise InternalError() from exc
    logger.info("created new user project, login: %s, name: %s, version: %s", login, name, version)
    return project
