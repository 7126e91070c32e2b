"""End-to-end orchestration: validate -> plan -> submit -> project."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from encrypted_volume.backends.base import ProvisioningBackend
from encrypted_volume.config.validation import validate
from encrypted_volume.context import ProviderContext
from encrypted_volume.errors import BackendError
from encrypted_volume.outputs import OutputSet, project
from encrypted_volume.planning.planner import plan
from encrypted_volume.utils.logger import get_logger, new_run_id


def provision(
    raw: Mapping[str, Any],
    *,
    backend: ProvisioningBackend,
    context: ProviderContext,
    run_id: Optional[str] = None,
) -> OutputSet:
    """Validate ``raw``, plan it, hand the intents to ``backend`` and project outputs.

    Invalid input raises ``ConfigValidationError`` before the backend is touched.
    Failures reported by the backend are raised as ``BackendError`` naming the
    first failed intent in plan order; the core never retries.
    """
    run_id = run_id or new_run_id()
    log = get_logger(__name__, run_id=run_id)

    config = validate(raw)
    resource_plan = plan(config, context)
    log.info(
        f"Submitting {len(resource_plan)} intent(s) for {resource_plan.base_name}",
        extra={"intent_count": len(resource_plan)},
    )

    result = backend.submit(resource_plan.intents)
    outputs = project(resource_plan, result)

    for logical_name in resource_plan.logical_names:
        reason = result.failed.get(logical_name)
        if reason is not None:
            log.error(f"Backend failed to realize {logical_name}: {reason}", extra={"logical_name": logical_name})
            raise BackendError(logical_name, reason, outputs=outputs)

    if outputs.pending:
        log.warning(f"Backend left {len(outputs.pending)} output(s) pending: {', '.join(outputs.pending)}")
    else:
        log.info("All planned resources realized")
    return outputs
