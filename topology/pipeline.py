from typing import Optional

import common.constants as constants
from topology.errors import InvalidSpecError
from topology.models import BuildPipeline, SecretRef


def validate_source(**fields: str) -> None:
    missing = sorted(name for name, value in fields.items() if not value or not value.strip())
    if missing:
        raise InvalidSpecError(f"Build pipeline requires non-empty {', '.join(missing)}")


def describe(
    source_owner: str,
    source_repo: str,
    auth_token: SecretRef,
    domain_name: str,
    branch_name: str,
    subdomain_name: str,
    site_key: Optional[SecretRef] = None,
) -> BuildPipeline:
    """Describe the static front-end build hosted on Amplify.

    The build recipe is fixed to the npm toolchain; only the source, branch and
    domain vary. A single-page-application fallback is always added so deep
    links served by the static host resolve to ``index.html``.
    """
    validate_source(
        source_owner=source_owner,
        source_repo=source_repo,
        domain_name=domain_name,
        branch_name=branch_name,
        subdomain_name=subdomain_name,
    )
    if not isinstance(auth_token, SecretRef):
        raise InvalidSpecError("auth_token must be a resolved SecretRef")

    return BuildPipeline(
        source_owner=source_owner,
        source_repo=source_repo,
        auth_token=auth_token,
        root_dir=constants.FRONTEND_APP_ROOT,
        build_commands=constants.FRONTEND_BUILD_COMMANDS,
        artifact_dir=constants.FRONTEND_ARTIFACT_DIR,
        artifact_globs=constants.FRONTEND_ARTIFACT_GLOBS,
        cache_paths=constants.FRONTEND_CACHE_PATHS,
        branch_name=branch_name,
        domain_name=domain_name.lower().rstrip("."),
        subdomain_name=subdomain_name,
        spa_fallback=True,
        site_key=site_key,
    )


def build_spec(pipeline: BuildPipeline) -> dict:
    """Amplify build specification for the pipeline's recipe."""
    return {
        "version": constants.FRONTEND_BUILD_SPEC_VERSION,
        "appRoot": pipeline.root_dir,
        "frontend": {
            "phases": {"build": {"commands": list(pipeline.build_commands)}},
            "artifacts": {
                "baseDirectory": pipeline.artifact_dir,
                "files": list(pipeline.artifact_globs),
            },
            "cache": {"paths": list(pipeline.cache_paths)},
        },
    }
