"""
Core services for the decision-support engine.

This package contains the pipeline stages (normalizer, rule engine,
classifier, assessment builder, aggregator, recommendation generator) and the
facade that composes them.
"""

from .aggregator import FindingsAggregator, identify_priority_areas, percent
from .assessment import build_assessment, derive_health_status
from .classifier import classify
from .decision_support import DecisionSupportService, create_service
from .normalizer import normalize
from .record_store import RecordStore
from .recommendations import generate_recommendations
from .result import Result
from .rule_engine import RuleEngine, run_domain
from .rule_table import default_rule_table
from .rules import RuleTable, load_rule_table

__all__ = [
    "DecisionSupportService",
    "FindingsAggregator",
    "RecordStore",
    "Result",
    "RuleEngine",
    "RuleTable",
    "build_assessment",
    "classify",
    "create_service",
    "default_rule_table",
    "derive_health_status",
    "generate_recommendations",
    "identify_priority_areas",
    "load_rule_table",
    "normalize",
    "percent",
    "run_domain",
]
