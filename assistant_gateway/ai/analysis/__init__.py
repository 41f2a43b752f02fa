"""
Analysis Module - deep analysis fan-out/fan-in.
"""

from assistant_gateway.ai.analysis.synthesizer import AnalysisFragment, FanOutSynthesizer

__all__ = ["AnalysisFragment", "FanOutSynthesizer"]
