"""Trend analysis, progression trigger and plan progression."""

from remend.progression.trend import TREND_WINDOW, TrendAnalysis, analyze_trend, classify_trend

__all__ = [
    "TREND_WINDOW",
    "TrendAnalysis",
    "analyze_trend",
    "classify_trend",
]
