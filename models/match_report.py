from pydantic import BaseModel
from typing import List, Dict
from datetime import datetime
from models.match_result import Confidence, MatchResult


class AppointmentMatchReport(BaseModel):
    """Report containing appointment matching results for one run."""
    
    run_id: str
    source: str
    run_date: datetime
    source_identifier: str  # file path of the calendar export
    total_appointments: int
    matched_appointments: int
    unmatched_appointments: int
    requires_review: int
    confidence_distribution: Dict[str, int]  # high/medium/low/none counts
    match_method_breakdown: Dict[str, int]
    documentation_breakdown: Dict[str, int]
    processing_time: float
    match_results: List[MatchResult]
    
    @classmethod
    def from_match_results(cls, 
                          run_id: str,
                          source: str,
                          source_identifier: str,
                          match_results: List[MatchResult],
                          processing_time: float) -> "AppointmentMatchReport":
        """Create report from match results."""
        
        total = len(match_results)
        matched = sum(1 for r in match_results if r.is_matched)
        unmatched = total - matched
        review_needed = sum(1 for r in match_results if r.requires_review)
        
        # Calculate confidence distribution
        confidence_dist = {level.value: 0 for level in Confidence}
        for result in match_results:
            confidence_dist[result.confidence.value] += 1
        
        # Calculate method breakdown
        method_breakdown = {}
        for result in match_results:
            method = result.match_method
            method_breakdown[method] = method_breakdown.get(method, 0) + 1

        documentation = {}
        for result in match_results:
            status = result.documentation_status.value
            documentation[status] = documentation.get(status, 0) + 1
        
        return cls(
            run_id=run_id,
            source=source,
            run_date=datetime.now(),
            source_identifier=source_identifier,
            total_appointments=total,
            matched_appointments=matched,
            unmatched_appointments=unmatched,
            requires_review=review_needed,
            confidence_distribution=confidence_dist,
            match_method_breakdown=method_breakdown,
            documentation_breakdown=documentation,
            processing_time=processing_time,
            match_results=match_results
        )
