# queue_optimizer/advisor/__init__.py
from .models import (
    ScalingAction,
    ScalingActionKind,
    ScalingConfig,
    RecommendationType,
    ResourceRecommendation,
)
from .optimizer import AutoOptimizer, recommended_limit
from .recommendations import RecommendationEngine
from .scaling import ScalingAdvisor, Provisioner

__all__ = [
    'ScalingAction',
    'ScalingActionKind',
    'ScalingConfig',
    'RecommendationType',
    'ResourceRecommendation',
    'AutoOptimizer',
    'recommended_limit',
    'RecommendationEngine',
    'ScalingAdvisor',
    'Provisioner',
]
