"""CI/CD system detection from environment variables."""
import os
from typing import Mapping, Optional

from .models import CiMetadata


def _github_run_url(env: Mapping[str, str]) -> Optional[str]:
    server = env.get('GITHUB_SERVER_URL')
    repo = env.get('GITHUB_REPOSITORY')
    run_id = env.get('GITHUB_RUN_ID')
    if server and repo and run_id:
        return f"{server}/{repo}/actions/runs/{run_id}"
    return None


def _azure_run_url(env: Mapping[str, str]) -> Optional[str]:
    uri = env.get('SYSTEM_TEAMFOUNDATIONCOLLECTIONURI')
    project = env.get('SYSTEM_TEAMPROJECT')
    build_id = env.get('BUILD_BUILDID')
    if uri and project and build_id:
        return f"{uri}{project}/_build/results?buildId={build_id}"
    return None


def collect_ci_metadata(environ: Optional[Mapping[str, str]] = None) -> Optional[CiMetadata]:
    """
    Detect the CI system the process runs in.

    Supports GitHub Actions, Jenkins, GitLab CI, CircleCI, Travis CI,
    Azure Pipelines and Bitrise.

    Returns:
        CiMetadata, or None when not running in a known CI system
    """
    env = os.environ if environ is None else environ

    if env.get('GITHUB_ACTIONS') == 'true':
        return CiMetadata(
            system='github-actions',
            build_number=env.get('GITHUB_RUN_NUMBER'),
            job_name=env.get('GITHUB_WORKFLOW'),
            run_id=env.get('GITHUB_RUN_ID'),
            run_url=_github_run_url(env),
            triggered_by=env.get('GITHUB_ACTOR'),
            agent=env.get('RUNNER_NAME'),
        )

    if 'JENKINS_HOME' in env or 'JENKINS_URL' in env:
        return CiMetadata(
            system='jenkins',
            build_number=env.get('BUILD_NUMBER'),
            job_name=env.get('JOB_NAME'),
            run_id=env.get('BUILD_ID'),
            run_url=env.get('BUILD_URL'),
            triggered_by=env.get('BUILD_USER'),
            agent=env.get('NODE_NAME'),
        )

    if env.get('GITLAB_CI') == 'true':
        return CiMetadata(
            system='gitlab-ci',
            build_number=env.get('CI_PIPELINE_IID'),
            job_name=env.get('CI_JOB_NAME'),
            run_id=env.get('CI_PIPELINE_ID'),
            run_url=env.get('CI_PIPELINE_URL'),
            triggered_by=env.get('GITLAB_USER_LOGIN'),
            agent=env.get('CI_RUNNER_DESCRIPTION'),
        )

    if env.get('CIRCLECI') == 'true':
        return CiMetadata(
            system='circleci',
            build_number=env.get('CIRCLE_BUILD_NUM'),
            job_name=env.get('CIRCLE_JOB'),
            run_id=env.get('CIRCLE_WORKFLOW_ID'),
            run_url=env.get('CIRCLE_BUILD_URL'),
            triggered_by=env.get('CIRCLE_USERNAME'),
            agent=env.get('CIRCLE_NODE_INDEX'),
        )

    if env.get('TRAVIS') == 'true':
        return CiMetadata(
            system='travis',
            build_number=env.get('TRAVIS_BUILD_NUMBER'),
            job_name=env.get('TRAVIS_JOB_NAME'),
            run_id=env.get('TRAVIS_JOB_ID'),
            run_url=env.get('TRAVIS_BUILD_WEB_URL'),
        )

    if env.get('TF_BUILD') == 'True':
        return CiMetadata(
            system='azure-pipelines',
            build_number=env.get('BUILD_BUILDNUMBER'),
            job_name=env.get('BUILD_DEFINITIONNAME'),
            run_id=env.get('BUILD_BUILDID'),
            run_url=_azure_run_url(env),
            triggered_by=env.get('BUILD_REQUESTEDFOR'),
            agent=env.get('AGENT_NAME'),
        )

    if env.get('BITRISE_IO') == 'true':
        return CiMetadata(
            system='bitrise',
            build_number=env.get('BITRISE_BUILD_NUMBER'),
            job_name=env.get('BITRISE_TRIGGERED_WORKFLOW_ID'),
            run_id=env.get('BITRISE_BUILD_SLUG'),
            run_url=env.get('BITRISE_BUILD_URL'),
            triggered_by=env.get('BITRISE_TRIGGERED_WORKFLOW_TITLE'),
        )

    return None
