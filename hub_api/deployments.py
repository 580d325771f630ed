import json
import logging
from typing import Any, Dict, List

import requests
from requests.adapters import HTTPAdapter

from hub_api.config import DeployerConfig, JenkinsConfig
from hub_api.errors import DeployFailed

logger = logging.getLogger(__name__)

USER_AGENT = "hub-api"
DEPLOY_JOB = "deploy-fixed-version"


def build_http_session(pool_size: int = 10) -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def build_jenkins_params(src_repo_name: str, dst_repo_name: str, version: str, deployer: DeployerConfig) -> Dict[str, Any]:
    parameters: List[Dict[str, str]] = [
        {"name": "SRC_REPO_NAME", "value": src_repo_name},
        {"name": "DST_REPO_NAME", "value": dst_repo_name},
        {"name": "VERSION", "value": version},
        {"name": "DEPLOYER_API", "value": deployer.deployer_api},
        {"name": "DEPLOYER_API_USER", "value": deployer.deployer_api_user},
        {"name": "DEPLOYER_API_PASSWORD", "value": deployer.deployer_api_password},
    ]
    return {"parameter": parameters}


class DeploymentDispatcher:
    """Submits fixed-version deploys to CI. Fire-and-forget: no polling, no output parsing."""

    def __init__(self, session: requests.Session, jenkins: JenkinsConfig, deployer: DeployerConfig, timeout: float):
        self.session = session
        self.jenkins = jenkins
        self.deployer = deployer
        self.timeout = timeout

    def deploy(self, src_repo_name: str, dst_repo_name: str, version: str) -> None:
        document = build_jenkins_params(src_repo_name, dst_repo_name, version, self.deployer)
        url = f"{self.jenkins.jenkins_api}/job/{DEPLOY_JOB}/build"
        try:
            response = self.session.post(
                url,
                data={"json": json.dumps(document)},
                auth=(self.jenkins.jenkins_api_user, self.jenkins.jenkins_api_token),
                timeout=self.timeout,
                allow_redirects=False,
            )
            response.raise_for_status()
            if not 200 <= response.status_code < 300:
                raise requests.HTTPError(f"unexpected status {response.status_code}", response=response)
        except requests.RequestException as exc:
            logger.warning("request to Jenkins is failed, dst: %s, version: %s, reason: %s", dst_repo_name, version, exc)
            raise DeployFailed(dst_repo_name, version) from exc
        logger.info(
            "submitted deploy, src: %s, dst: %s, version: %s, status: %s",
            src_repo_name,
            dst_repo_name,
            version,
            response.status_code,
        )
