# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for backupdriver tests.

Provides a recording executor, driver configuration and backup targets.
"""

import json
from dataclasses import dataclass
from typing import List, Sequence

import pytest

from backupdriver.exceptions import ExecutionError

ENGINE_IMAGE = "longhornio/longhorn-engine:v1.6.0"
ENGINE_BINARY = "/var/lib/longhorn/engine-binaries/longhornio-longhorn-engine-v1.6.0/longhorn"
S3_URL = "s3://backupbucket@us-east-1/"
CONTROLLER_URL = "10.42.0.15:10000"


@dataclass
class ExecutorCall:
    envs: List[str]
    binary: str
    args: List[str]
    timeout: float | None


class RecordingExecutor:
    """
    Executor test double.

    Records every call and answers from a queue of responses; a response
    that is an exception is raised instead of returned.
    """

    def __init__(self, *responses):
        self.calls: List[ExecutorCall] = []
        self.responses = list(responses)

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    async def execute(
        self,
        envs: Sequence[str],
        binary: str,
        args: Sequence[str],
        timeout: float | None,
    ) -> str:
        self.calls.append(ExecutorCall(list(envs), binary, list(args), timeout))
        if not self.responses:
            return ""
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


def execution_error(output: str = "", stderr: str = "", returncode: int = 1) -> ExecutionError:
    """Build the error a non-zero engine exit produces."""
    return ExecutionError(
        f"failed to execute: output {output}, stderr {stderr}: exit status {returncode}",
        binary=ENGINE_BINARY,
        args=["backup"],
        returncode=returncode,
        output=output,
        stderr=stderr,
    )


def not_found_error() -> ExecutionError:
    return execution_error(stderr="error: cannot find backupstore/volumes/vol-1/volume.cfg in backupstore")


def version_output(cli_api_version: int) -> str:
    return json.dumps(
        {
            "clientVersion": {
                "version": "v1.6.0",
                "gitCommit": "abc123",
                "buildDate": "2024-01-01T00:00:00+00:00",
                "cliAPIVersion": cli_api_version,
                "cliAPIMinVersion": 3,
                "controllerAPIVersion": 5,
                "controllerAPIMinVersion": 3,
                "dataFormatVersion": 1,
                "dataFormatMinVersion": 1,
            },
            "serverVersion": None,
        }
    )


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def driver_config():
    from backupdriver.builder import create_config

    return create_config(ENGINE_IMAGE)


@pytest.fixture
def s3_credential() -> dict:
    return {
        "AWS_ACCESS_KEY_ID": "AKIAEXAMPLE",
        "AWS_SECRET_ACCESS_KEY": "s3cr3t",
        "AWS_ENDPOINTS": "https://minio.local:9000",
    }


@pytest.fixture
def s3_target(s3_credential):
    from backupdriver.config import BackupTarget

    return BackupTarget(url=S3_URL, credential=s3_credential)


@pytest.fixture
def target_client(driver_config, s3_target, executor):
    from backupdriver.target import BackupTargetClient

    return BackupTargetClient(driver_config, s3_target, executor=executor)


@pytest.fixture
def engine(driver_config, executor):
    from backupdriver.engine import EngineBinary

    return EngineBinary(driver_config, "vol-1", controller_url=CONTROLLER_URL, executor=executor)
