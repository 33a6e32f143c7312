"""Core dispatch runtime.

This package provides:
- CapabilityRegistry: capability registration, validation and invocation
- ThreadMemoryStore: bounded, expiring per-thread state
- AgentProfileTable: the static set of agents
- IntentClassifier: rule fast-path routing with a pluggable fallback
- DispatchLoop: the request/tool/follow-up cycle with handoff
"""

from .classifier import (
    FallbackClassifier,
    IntentClassifier,
    ModelFallbackClassifier,
    RuleSet,
    load_rule_sets,
)
from .dispatcher import (
    BasicSystemContext,
    DispatchLoop,
    StageCallback,
    SystemContextBuilder,
)
from .memory import ThreadMemoryStore, trim_messages
from .profiles import AgentProfileTable
from .registry import CapabilityRegistry

__all__ = [
    # Registry
    "CapabilityRegistry",
    # Memory
    "ThreadMemoryStore",
    "trim_messages",
    # Profiles
    "AgentProfileTable",
    # Classifier
    "FallbackClassifier",
    "IntentClassifier",
    "ModelFallbackClassifier",
    "RuleSet",
    "load_rule_sets",
    # Dispatch
    "BasicSystemContext",
    "DispatchLoop",
    "StageCallback",
    "SystemContextBuilder",
]
