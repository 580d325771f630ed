"""Bare repository provisioning.

A repository is built completely inside a staging sibling directory and renamed
into ``<base>/<login>-<project>.git`` only once every step has succeeded, with the
``hub-provisioned`` sentinel written last. A final path that exists without the
sentinel was left behind by an interrupted run and is completed in place.
"""

import errno
import grp
import logging
import os
import pwd
import secrets
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from hub_api.errors import InternalError
from hub_api.hooks import HOOK_MODE, UpdateHookParams, render_update_hook
from hub_api.naming import repo_name

logger = logging.getLogger(__name__)

SENTINEL = "hub-provisioned"
STAGING_MARKER = ".staging-"
REPO_MODE = 0o775


@dataclass
class ProvisionResult:
    repository_created: bool
    repo_name: str
    path: str


class ProvisioningError(RuntimeError):
    pass


def repo_path(base_repo_dir: str, name: str) -> str:
    return os.path.join(base_repo_dir, f"{name}.git")


def is_complete(path: str) -> bool:
    return os.path.isfile(os.path.join(path, SENTINEL))


def is_staging_dir(entry: str) -> bool:
    return entry.startswith(".") and STAGING_MARKER in entry


def _redact(text: str, secrets_to_hide: Iterable[str]) -> str:
    redacted = text or ""
    for value in secrets_to_hide:
        if value:
            redacted = redacted.replace(value, "***REDACTED***")
    return redacted


class RepositoryProvisioner:
    def __init__(
        self,
        base_repo_dir: str,
        *,
        git_bin: str = "git",
        owner: str = "service",
        group: str = "www-data",
        redact: Sequence[str] = (),
    ):
        self.base_repo_dir = base_repo_dir
        self.git_bin = git_bin
        self.owner = owner
        self.group = group
        self.redact = list(redact)

    def provision(self, login: str, project_name: str, hook_params: UpdateHookParams) -> ProvisionResult:
        name = repo_name(login, project_name)
        path = repo_path(self.base_repo_dir, name)

        if os.path.isdir(path):
            if is_complete(path):
                logger.info("repository already exists, path: %s", path)
                return ProvisionResult(repository_created=False, repo_name=name, path=path)
            logger.warning("repository is incomplete, completing in place, path: %s", path)
            try:
                self._build(path, name, hook_params)
            except (OSError, ProvisioningError) as exc:
                logger.error("can not complete repository %s, reason: %s", name, exc)
                raise InternalError(f"can not create repository: {exc}") from exc
            return ProvisionResult(repository_created=True, repo_name=name, path=path)
        if os.path.exists(path):
            raise InternalError(f"can not create repository: {path} exists and is not a directory")

        staging = os.path.join(self.base_repo_dir, f".{name}.git{STAGING_MARKER}{secrets.token_hex(6)}")
        try:
            os.mkdir(staging)
            self._build(staging, name, hook_params)
            os.rename(staging, path)
        except OSError as exc:
            self._discard(staging)
            if exc.errno in (errno.EEXIST, errno.ENOTEMPTY) and os.path.isdir(path):
                logger.info("repository was created concurrently, path: %s", path)
                return ProvisionResult(repository_created=False, repo_name=name, path=path)
            logger.error("can not create repository %s, reason: %s", name, exc)
            raise InternalError(f"can not create repository: {exc}") from exc
        except ProvisioningError as exc:
            self._discard(staging)
            logger.error("can not create repository %s, reason: %s", name, exc)
            raise InternalError(f"can not create repository: {exc}") from exc
        logger.info("created repository, path: %s", path)
        return ProvisionResult(repository_created=True, repo_name=name, path=path)

    def _build(self, path: str, name: str, hook_params: UpdateHookParams) -> None:
        self._run([self.git_bin, "--bare", "init"], path)
        self._run([self.git_bin, "update-server-info"], path)
        self._run([self.git_bin, "config", "--file", "config", "http.receivepack", "true"], path)
        self._write_description(path, name)
        self._write_hook(path, render_update_hook(hook_params))
        self._set_ownership(path)
        self._write_sentinel(path)

    def _run(self, args: List[str], cwd: str) -> None:
        try:
            completed = subprocess.run(args, cwd=cwd, capture_output=True, text=True, check=True)
        except subprocess.CalledProcessError as exc:
            stderr = _redact(exc.stderr or "", self.redact).strip()
            logger.error("command %s failed, cwd: %s, exit_code: %s, stderr: %s", args, cwd, exc.returncode, stderr)
            raise ProvisioningError(f"{' '.join(args[:3])} exited with {exc.returncode}") from exc
        except FileNotFoundError as exc:
            raise ProvisioningError(f"{args[0]} is not installed") from exc
        logger.info("executed %s, cwd: %s, exit_code: %s", args, cwd, completed.returncode)

    def _set_ownership(self, path: str) -> None:
        uid = gid = -1
        if self.owner:
            try:
                uid = pwd.getpwnam(self.owner).pw_uid
                gid = grp.getgrnam(self.group).gr_gid if self.group else -1
            except KeyError as exc:
                raise ProvisioningError(f"unknown repository owner or group: {exc}") from exc
        for root, dirs, files in os.walk(path):
            for entry in [root] + [os.path.join(root, item) for item in dirs + files]:
                if uid != -1 or gid != -1:
                    os.chown(entry, uid, gid, follow_symlinks=False)
                if not os.path.islink(entry):
                    os.chmod(entry, REPO_MODE)

    def _write_description(self, path: str, name: str) -> None:
        file_path = os.path.join(path, "description")
        with open(file_path, "w", encoding="utf-8") as handle:
            handle.write(name)
        logger.info("write git description, file_path: %s", file_path)

    def _write_hook(self, path: str, content: str) -> None:
        hooks_dir = os.path.join(path, "hooks")
        os.makedirs(hooks_dir, exist_ok=True)
        file_path = os.path.join(hooks_dir, "update")
        fd, tmp_path = tempfile.mkstemp(prefix=".update-", dir=hooks_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_path, HOOK_MODE)
            os.replace(tmp_path, file_path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.info("write git hook, file_path: %s", file_path)

    def _write_sentinel(self, path: str) -> None:
        file_path = os.path.join(path, SENTINEL)
        with open(file_path, "w", encoding="utf-8") as handle:
            handle.write("ok\n")
        logger.info("write provisioning sentinel, file_path: %s", file_path)

    def _discard(self, staging: Optional[str]) -> None:
        if staging and os.path.isdir(staging):
            shutil.rmtree(staging, ignore_errors=True)
