"""Job request analysis."""

from allobricolage.agents.job_analyzer import JobAnalysis, JobAnalyzer

__all__ = [
    "JobAnalysis",
    "JobAnalyzer",
]
