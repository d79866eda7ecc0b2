import os
from typing import Any, Mapping, Optional, Protocol

import boto3
from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.parameters import SSMProvider
from aws_lambda_powertools.utilities.parameters.exceptions import GetParameterError
from botocore.exceptions import ClientError

from topology.errors import SecretNotFoundError
from topology.models import SecretRef

logger = Logger(
    service="functional-vote-secrets", level=os.getenv("LOG_LEVEL", "INFO").upper()
)


class ParameterStore(Protocol):
    def get_parameter(self, name: str) -> str:
        """Return the parameter value, raising KeyError when it does not exist."""
        ...


def _error_code(error: GetParameterError) -> str:
    # The provider wraps the boto3 error it caught
    cause = error.__cause__ or error.__context__
    if isinstance(cause, ClientError):
        return cause.response.get("Error", {}).get("Code", "Unknown")
    return "Unknown"


class SsmParameterStore:
    """SSM Parameter Store reader. Values are fetched fresh on every call."""

    def __init__(self, region: Optional[str] = None, client: Any = None) -> None:
        self.client = client or boto3.client("ssm", region_name=region)
        self._provider = SSMProvider(boto3_client=self.client)

    def get_parameter(self, name: str) -> str:
        try:
            value = self._provider.get(name, decrypt=True, force_fetch=True)
        except GetParameterError as e:
            if _error_code(e) == "ParameterNotFound":
                raise KeyError(name) from e
            raise
        return str(value)


class SecretResolver:
    def __init__(self, store: ParameterStore) -> None:
        self.store = store

    def resolve(self, name: str) -> SecretRef:
        try:
            value = self.store.get_parameter(name)
        except KeyError as e:
            logger.error("Parameter not found", secret_name=name)
            raise SecretNotFoundError(name) from e
        logger.info("Resolved secret", secret_name=name)
        return SecretRef(name=name, value=value)

    def resolve_all(self, parameters: Mapping[str, str]) -> dict[str, SecretRef]:
        """Resolve ``{env_name: parameter_name}``, stopping at the first missing name."""
        return {env_name: self.resolve(name) for env_name, name in parameters.items()}
