# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from typing import Final, Tuple

# Workflow / action manifest field names
FIELD_ON: Final[str] = "on"
FIELD_JOBS: Final[str] = "jobs"
FIELD_STEPS: Final[str] = "steps"
FIELD_NEEDS: Final[str] = "needs"
FIELD_USES: Final[str] = "uses"
FIELD_WITH: Final[str] = "with"
FIELD_INPUTS: Final[str] = "inputs"
FIELD_OUTPUTS: Final[str] = "outputs"
FIELD_SECRETS: Final[str] = "secrets"
FIELD_ID: Final[str] = "id"
FIELD_NAME: Final[str] = "name"
FIELD_TYPE: Final[str] = "type"
FIELD_DESCRIPTION: Final[str] = "description"
FIELD_DESC: Final[str] = "desc"
FIELD_REQUIRED: Final[str] = "required"
FIELD_RUNS: Final[str] = "runs"
FIELD_DEFAULT: Final[str] = "default"

# Reference grammar
TAG_SEPARATOR: Final[str] = "@"
LOCAL_PREFIX: Final[str] = "./"
CONTROL_DIR: Final[str] = ".github"
YAML_EXTENSIONS: Final[Tuple[str, ...]] = (".yml", ".yaml")
WORKFLOWS_PATH: Final[str] = "/.github/workflows/"
ACTION_MANIFESTS: Final[Tuple[str, ...]] = ("action.yml", "action.yaml")

# URL templates; hosts are filled in from ActionRefConfig
DEFAULT_RAW_CONTENT_HOST: Final[str] = "https://raw.githubusercontent.com"
DEFAULT_GITHUB_HOST: Final[str] = "https://github.com"
RAW_ACTION_URL: Final[str] = "{host}/{slug}/{ref}{subpath}/action.yml"
RAW_WORKFLOW_URL: Final[str] = "{host}/{slug}/{ref}" + WORKFLOWS_PATH + "{name}"
BROWSE_ACTION_URL: Final[str] = "{host}/{slug}/blob/{ref}{subpath}/action.yml"
BROWSE_WORKFLOW_URL: Final[str] = "{host}/{slug}/blob/{ref}" + WORKFLOWS_PATH + "{name}"
TREE_URL: Final[str] = "{host}/{slug}/tree/{ref}"
MARKETPLACE_URL: Final[str] = "{host}/marketplace/{slug}"

CACHE_FILE_SUFFIX: Final[str] = ".yml"
