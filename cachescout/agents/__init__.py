"""
Agent Module - Components of the diagnostic loop.

Components:
    - DecisionEngine: picks the next action from memory
    - PageAnalysisStep: fetch, cache test and classification of one URL
    - RuleLearner: advisory learned rules
    - NarrativeReviewer: optional LLM review of interesting pages
    - ExperimentRunner: cache-behavior experiments against the reference URL
    - Monitor: periodic re-analysis and change detection
    - AutonomousAgent: runs all of the above for one base URL
"""

from .base import BaseComponent
from .decision import DecisionEngine
from .page_analysis import PageAnalysisStep
from .learner import RuleLearner
from .reviewer import NarrativeReviewer
from .experimenter import ExperimentRunner
from .synthesizer import synthesize
from .monitor import Monitor, detect_changes
from .orchestrator import AutonomousAgent

__all__ = [
    "BaseComponent",
    "DecisionEngine",
    "PageAnalysisStep",
    "RuleLearner",
    "NarrativeReviewer",
    "ExperimentRunner",
    "synthesize",
    "Monitor",
    "detect_changes",
    "AutonomousAgent",
]
