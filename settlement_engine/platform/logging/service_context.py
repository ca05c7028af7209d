"""
Replica identity for log lines

Several stateless replicas share one database; every log line carries
`<service>@<env>:<instance>` so sweeper and webhook activity can be traced
back to the process that did it.
"""

import os
import socket
from functools import lru_cache

from settlement_engine.platform.config.core_setting import settings


def _instance_id() -> str:
    # ECS: http://169.254.170.2/v4/{task_id}-{timestamp}
    metadata_uri = os.getenv('ECS_CONTAINER_METADATA_URI_V4', '')
    if metadata_uri:
        task_id = metadata_uri.rstrip('/').rsplit('/', 1)[-1].split('-', 1)[0]
        if task_id:
            return task_id[:8]
    return f'{socket.gethostname()}-{os.getpid()}'


@lru_cache(maxsize=1)
def get_service_context() -> str:
    return f'{settings.SERVICE_NAME}@{settings.DEPLOY_ENV}:{_instance_id()}'
