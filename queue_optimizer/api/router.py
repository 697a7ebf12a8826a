# queue_optimizer/api/router.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse

from queue_optimizer.advisor import ResourceRecommendation, ScalingAction, ScalingConfig
from queue_optimizer.analysis import (
    QueueAnalysisReport,
    StaticBuildHistory,
    StaticInventory,
    render_recommendations,
    render_report,
    render_scaling_actions,
    render_summary,
    render_throttles,
)
from queue_optimizer.exceptions import InvalidArgumentError, InventoryUnavailableError
from queue_optimizer.log_handler import get_logger
from queue_optimizer.ray_init import get_ray_dashboard_url, get_ray_resources
from queue_optimizer.throttle import ThrottleNamespace
from .exceptions import (
    InvalidRequestError,
    OptimizerServiceError,
    ServiceUnavailableError,
    ThrottleNotFoundError,
)
from .models import (
    AdmissionRequest,
    AdmissionResponse,
    InventoryResponse,
    InventoryUpdate,
    ThrottleListResponse,
    ThrottleResponse,
    ThrottleSettings,
)
from .state import AppState

logger = get_logger(__name__)

router = APIRouter()


def get_app_state(request: Request) -> AppState:
    return request.app.state.services


def _analyze(state: AppState) -> QueueAnalysisReport:
    try:
        return state.analyzer.analyze()
    except InventoryUnavailableError as e:
        raise ServiceUnavailableError(str(e))
    except InvalidArgumentError as e:
        raise InvalidRequestError(f"Malformed fleet snapshot: {str(e)}")


@router.get("/analysis", response_model=QueueAnalysisReport)
async def get_analysis(state: AppState = Depends(get_app_state)):
    """Analyze the queue and executor load"""
    return _analyze(state)


@router.get("/analysis/text", response_class=PlainTextResponse)
async def get_analysis_text(state: AppState = Depends(get_app_state)):
    return render_report(_analyze(state))


@router.get("/analysis/summary", response_class=PlainTextResponse)
async def get_analysis_summary(state: AppState = Depends(get_app_state)):
    report = _analyze(state)
    recommendations = state.engine.generate(report, state.build_history.running_builds())
    return render_summary(report, recommendations)


@router.get("/recommendations", response_model=List[str])
async def get_recommendations(state: AppState = Depends(get_app_state)):
    """Scheduling recommendations in rule order"""
    report = _analyze(state)
    return state.engine.generate(report, state.build_history.running_builds())


@router.get("/recommendations/text", response_class=PlainTextResponse)
async def get_recommendations_text(state: AppState = Depends(get_app_state)):
    report = _analyze(state)
    return render_recommendations(state.engine.generate(report, state.build_history.running_builds()))


@router.get("/recommendations/resources", response_model=List[ResourceRecommendation])
async def get_resource_recommendations(state: AppState = Depends(get_app_state)):
    return state.engine.resource_recommendations(_analyze(state))


def _scaling_config(
    state: AppState,
    min_agents: Optional[int],
    max_agents: Optional[int],
    label: Optional[str],
    dry_run: bool = False,
) -> ScalingConfig:
    try:
        return ScalingConfig(
            min_agents=state.config.min_agents if min_agents is None else min_agents,
            max_agents=state.config.max_agents if max_agents is None else max_agents,
            target_label=label,
            dry_run=dry_run,
        )
    except ValueError as e:
        raise InvalidRequestError(str(e))


@router.get("/scaling", response_model=List[ScalingAction])
async def get_scaling_actions(
    min_agents: Optional[int] = Query(None, ge=0, description="Minimum agents per label"),
    max_agents: Optional[int] = Query(None, ge=1, description="Maximum agents per label"),
    label: Optional[str] = Query(None, description="Only evaluate this label"),
    state: AppState = Depends(get_app_state),
):
    """Suggested provision/terminate actions per label"""
    config = _scaling_config(state, min_agents, max_agents, label)
    return state.advisor.determine_actions(_analyze(state), config)


@router.get("/scaling/text", response_class=PlainTextResponse)
async def get_scaling_text(
    min_agents: Optional[int] = Query(None, ge=0),
    max_agents: Optional[int] = Query(None, ge=1),
    label: Optional[str] = Query(None),
    state: AppState = Depends(get_app_state),
):
    config = _scaling_config(state, min_agents, max_agents, label, dry_run=True)
    actions = state.advisor.determine_actions(_analyze(state), config)
    return render_scaling_actions(actions, dry_run=True)


@router.post("/scaling/apply", response_model=List[str])
async def apply_scaling_actions(
    min_agents: Optional[int] = Query(None, ge=0),
    max_agents: Optional[int] = Query(None, ge=1),
    label: Optional[str] = Query(None),
    dry_run: bool = Query(False),
    state: AppState = Depends(get_app_state),
):
    """Compute scaling actions and hand them to the configured provisioner"""
    if state.provisioner is None and not dry_run:
        raise ServiceUnavailableError("No provisioner configured")

    config = _scaling_config(state, min_agents, max_agents, label, dry_run)
    actions = state.advisor.determine_actions(_analyze(state), config)
    return state.advisor.apply(actions, state.provisioner, dry_run=config.dry_run)


@router.get("/throttles", response_model=ThrottleListResponse)
async def list_throttles(state: AppState = Depends(get_app_state)):
    return ThrottleListResponse(
        job_throttles={
            name: ThrottleSettings(**config.to_dict())
            for name, config in state.registry.job_throttles().items()
        },
        label_throttles={
            name: ThrottleSettings(**config.to_dict())
            for name, config in state.registry.label_throttles().items()
        },
    )


@router.get("/throttles/text", response_class=PlainTextResponse)
async def list_throttles_text(state: AppState = Depends(get_app_state)):
    return render_throttles(state.registry.job_throttles(), state.registry.label_throttles())


@router.put("/throttles/{namespace}/{key}", response_model=ThrottleResponse)
async def set_throttle(
    namespace: ThrottleNamespace,
    key: str,
    settings: ThrottleSettings,
    state: AppState = Depends(get_app_state),
):
    """Create or replace a job or label throttle"""
    # The cluster is updated first; a failure there leaves the local policy untouched
    try:
        if state.ray_throttles is not None:
            await state.ray_throttles.set_throttle(
                namespace, key, settings.max_concurrent, settings.period_seconds
            )
        config = state.registry.set_throttle(
            namespace, key, settings.max_concurrent, settings.period_seconds
        )
    except InvalidArgumentError as e:
        logger.error(f"Invalid throttle for {namespace.value} {key}: {str(e)}")
        raise InvalidRequestError(str(e))
    except Exception as e:
        logger.exception(f"Failed to set cluster throttle for {namespace.value} {key}")
        raise ServiceUnavailableError(f"Failed to update cluster throttle: {str(e)}")

    return ThrottleResponse(
        namespace=namespace.value,
        key=key,
        max_concurrent=config.max_concurrent,
        period_seconds=config.period_seconds,
        message=f"Set throttle for {namespace.value} {key}: {config.describe()}",
    )


@router.delete("/throttles/{namespace}/{key}")
async def remove_throttle(
    namespace: ThrottleNamespace,
    key: str,
    state: AppState = Depends(get_app_state),
):
    try:
        existing = state.registry.get(namespace, key)
    except InvalidArgumentError as e:
        raise InvalidRequestError(str(e))
    if existing is None:
        raise ThrottleNotFoundError(f"No throttle found for {namespace.value} {key}")

    if state.ray_throttles is not None:
        try:
            await state.ray_throttles.remove_throttle(namespace, key)
        except Exception as e:
            logger.exception(f"Failed to remove cluster throttle for {namespace.value} {key}")
            raise ServiceUnavailableError(f"Failed to update cluster throttle: {str(e)}")
    state.registry.remove_throttle(namespace, key)
    return {"message": f"Removed throttle for {namespace.value} {key}"}


@router.post("/throttles/admit", response_model=AdmissionResponse)
async def admit(request: AdmissionRequest, state: AppState = Depends(get_app_state)):
    """Admit one execution against the job throttle and, if given, the label throttle"""
    try:
        if state.ray_throttles is not None:
            allowed = await state.ray_throttles.admit(
                request.job_name,
                label=request.label,
                job_running=request.job_running,
                label_running=request.label_running,
            )
        else:
            allowed = state.registry.admit(
                request.job_name,
                label=request.label,
                job_running=request.job_running,
                label_running=request.label_running,
            )
    except InvalidArgumentError as e:
        raise InvalidRequestError(str(e))
    except Exception as e:
        logger.exception(f"Cluster admission failed for job {request.job_name}")
        raise ServiceUnavailableError(f"Cluster admission failed: {str(e)}")
    return AdmissionResponse(job_name=request.job_name, label=request.label, allowed=allowed)


@router.post("/throttles/optimize", response_model=List[str])
async def auto_optimize(state: AppState = Depends(get_app_state)):
    """Apply suggested job throttles from currently running build counts"""
    running_builds = state.build_history.running_builds()
    if state.ray_throttles is not None:
        try:
            for job_name, limit in state.optimizer.calculate_throttle_settings(running_builds).items():
                await state.ray_throttles.set_throttle(ThrottleNamespace.JOB, job_name, limit)
        except Exception as e:
            logger.exception("Failed to mirror optimized throttles to the cluster")
            raise ServiceUnavailableError(f"Failed to update cluster throttle: {str(e)}")
    try:
        return state.optimizer.auto_optimize(running_builds)
    except Exception as e:
        logger.exception("Unexpected error while auto-optimizing throttles")
        raise OptimizerServiceError(f"Failed to optimize throttles: {str(e)}")


@router.get("/throttles/cluster/info")
async def cluster_info(state: AppState = Depends(get_app_state)):
    """Whether Ray admission is enabled, plus the cluster's free resources and dashboard"""
    if state.ray_throttles is None:
        return {"ray_enabled": False, "dashboard_url": None, "resources": {}}
    return {
        "ray_enabled": True,
        "dashboard_url": get_ray_dashboard_url(),
        "resources": get_ray_resources(),
    }


@router.get("/throttles/cluster")
async def cluster_throttle_stats(state: AppState = Depends(get_app_state)):
    """Stats of the Ray throttle actors, empty when Ray admission is disabled"""
    if state.ray_throttles is None:
        return []
    return await state.ray_throttles.get_stats()


@router.put("/inventory", response_model=InventoryResponse)
async def update_inventory(update: InventoryUpdate, state: AppState = Depends(get_app_state)):
    """Replace the fleet snapshot pushed by the external collector"""
    if not isinstance(state.inventory, StaticInventory):
        raise ServiceUnavailableError("Inventory is provided by an external source and cannot be replaced")
    if update.running_builds is not None and not isinstance(state.build_history, StaticBuildHistory):
        raise ServiceUnavailableError("Build history is provided by an external source and cannot be replaced")

    state.inventory.update(update.nodes, update.queue)
    if update.running_builds is not None:
        state.build_history.update(update.running_builds)
    logger.info(f"Inventory updated: {len(update.nodes)} nodes, {len(update.queue)} queued items")
    return InventoryResponse(
        nodes=len(update.nodes),
        queue_length=len(update.queue),
        message="Inventory updated",
    )
