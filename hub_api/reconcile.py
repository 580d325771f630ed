"""Cross-check the catalog against repositories on disk.

Catalog inserts and repository provisioning are not coordinated, so either side can
exist without the other. Only an explicit prune removes anything.
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import List, Set

from sqlalchemy import select
from sqlalchemy.orm import Session

from hub_api.models import Account, Project
from hub_api.naming import repo_name
from hub_api.repositories import is_complete, is_staging_dir

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    missing_repositories: List[str] = field(default_factory=list)
    uncatalogued_repositories: List[str] = field(default_factory=list)
    incomplete_repositories: List[str] = field(default_factory=list)
    staging_dirs: List[str] = field(default_factory=list)
    pruned: List[str] = field(default_factory=list)

    def is_clean(self) -> bool:
        return not (
            self.missing_repositories
            or self.uncatalogued_repositories
            or self.incomplete_repositories
            or set(self.staging_dirs) - set(self.pruned)
        )


def _catalogued_names(db: Session) -> Set[str]:
    rows = db.execute(select(Account.login, Project.name).join(Project.owner).distinct()).all()
    return {repo_name(login, name) for login, name in rows}


def reconcile(db: Session, base_repo_dir: str, *, prune_staging: bool = False) -> ReconcileReport:
    report = ReconcileReport()
    catalogued = _catalogued_names(db)
    on_disk: Set[str] = set()

    for entry in sorted(os.listdir(base_repo_dir)):
        full_path = os.path.join(base_repo_dir, entry)
        if not os.path.isdir(full_path):
            continue
        if is_staging_dir(entry):
            report.staging_dirs.append(entry)
            if prune_staging:
                shutil.rmtree(full_path)
                report.pruned.append(entry)
                logger.info("removed staging directory %s", full_path)
            continue
        if not entry.endswith(".git"):
            continue
        name = entry[: -len(".git")]
        on_disk.add(name)
        if not is_complete(full_path):
            report.incomplete_repositories.append(name)

    report.missing_repositories = sorted(catalogued - on_disk)
    report.uncatalogued_repositories = sorted(
        name for name in on_disk - catalogued if name not in report.incomplete_repositories
    )
    return report
