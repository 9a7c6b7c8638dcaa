"""Services package - slope analysis orchestration."""

from services.slope_analysis import (
    SlopeAnalysisService,
    analyze_point,
    analyze_polygon,
    parse_request,
    run_analysis,
    run_point_analysis,
)

__all__ = [
    'SlopeAnalysisService',
    'analyze_point',
    'analyze_polygon',
    'parse_request',
    'run_analysis',
    'run_point_analysis',
]
