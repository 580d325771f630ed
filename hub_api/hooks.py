import shlex
from dataclasses import dataclass

from hub_api.config import DeployerConfig, JenkinsConfig

HOOK_MODE = 0o775


@dataclass(frozen=True)
class UpdateHookParams:
    jenkins_api: str
    jenkins_api_user: str
    jenkins_api_token: str
    job_name: str
    deployer_api: str
    deployer_api_user: str
    deployer_api_password: str
    login: str
    project_name: str

    @classmethod
    def build(cls, jenkins: JenkinsConfig, deployer: DeployerConfig, login: str, project_name: str) -> "UpdateHookParams":
        return cls(
            jenkins_api=jenkins.jenkins_api,
            jenkins_api_user=jenkins.jenkins_api_user,
            jenkins_api_token=jenkins.jenkins_api_token,
            job_name=jenkins.job_name,
            deployer_api=deployer.deployer_api,
            deployer_api_user=deployer.deployer_api_user,
            deployer_api_password=deployer.deployer_api_password,
            login=login,
            project_name=project_name,
        )


def render_update_hook(params: UpdateHookParams) -> str:
    q = shlex.quote
    return rf"""#!/bin/bash
# Server-side update hook for {params.login}-{params.project_name}.
# Generated by hub-api. Contains CI and deployer credentials: keep mode 0775.
set -u

REFNAME="$1"
OLDREV="$2"
NEWREV="$3"
ZERO_REV="0000000000000000000000000000000000000000"

JENKINS_API={q(params.jenkins_api)}
JENKINS_API_USER={q(params.jenkins_api_user)}
JENKINS_API_TOKEN={q(params.jenkins_api_token)}
JOB_NAME={q(params.job_name)}
DEPLOYER_API={q(params.deployer_api)}
DEPLOYER_API_USER={q(params.deployer_api_user)}
DEPLOYER_API_PASSWORD={q(params.deployer_api_password)}
LOGIN={q(params.login)}
PROJECT_NAME={q(params.project_name)}

# ref deletions do not build
if [ "$NEWREV" = "$ZERO_REV" ]; then
  exit 0
fi

json_escape() {{
  printf '%s' "$1" | sed -e 's/\\/\\\\/g' -e 's/"/\\"/g'
}}

param() {{
  printf '{{"name":"%s","value":"%s"}}' "$1" "$(json_escape "$2")"
}}

basic_auth() {{
  printf 'user = "%s:%s"\n' "$(json_escape "$1")" "$(json_escape "$2")"
}}

JENKINS_PARAMS="{{\"parameter\":[$(param LOGIN "$LOGIN"),$(param PROJECT_NAME "$PROJECT_NAME"),$(param REF "$REFNAME"),$(param SHA "$NEWREV"),$(param DEPLOYER_API "$DEPLOYER_API"),$(param DEPLOYER_API_USER "$DEPLOYER_API_USER"),$(param DEPLOYER_API_PASSWORD "$DEPLOYER_API_PASSWORD")]}}"

if ! curl --silent --show-error --fail --max-time 10 \
    --config <(basic_auth "$JENKINS_API_USER" "$JENKINS_API_TOKEN") \
    --data-urlencode "json=$JENKINS_PARAMS" \
    "$JENKINS_API/job/$JOB_NAME/build" >/dev/null; then
  echo "warning: could not trigger CI build for $LOGIN-$PROJECT_NAME $REFNAME" >&2
fi

DEPLOY_BODY="{{\"login\":\"$(json_escape "$LOGIN")\",\"project_name\":\"$(json_escape "$PROJECT_NAME")\",\"ref\":\"$(json_escape "$REFNAME")\",\"sha\":\"$NEWREV\"}}"

if ! curl --silent --show-error --fail --max-time 10 \
    --config <(basic_auth "$DEPLOYER_API_USER" "$DEPLOYER_API_PASSWORD") \
    --header "Content-Type: application/json" \
    --data "$DEPLOY_BODY" \
    "$DEPLOYER_API/api/v1/deploy" >/dev/null; then
  echo "warning: could not request deploy for $LOGIN-$PROJECT_NAME $REFNAME" >&2
fi

exit 0
"""
