"""
timingsign.runtime
==================

Execution infrastructure for timing experiments.

Key Components
--------------
- `ExperimentTemplate`: Base class for experiment definitions
- `AnalysisResult`: Standard result container for one look
- `SequentialRunner`: Look-by-look execution of a template
- `SequentialDecisionLoop`: Source-driven sequential test with a verdict

Examples
--------
>>> from timingsign.runtime.experiment_template import ExperimentTemplate, AnalysisResult
>>> from timingsign.runtime.runners import SequentialDecisionLoop, Outcome
>>> Outcome.REJECTED.value
'rejected'
"""
