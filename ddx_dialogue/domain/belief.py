"""Posterior belief over the condition catalog.

Findings are combined naive-Bayes style: every evidence key multiplies each
condition's running score by that condition's likelihood weight for the key
(neutral 1.0 when the condition has no opinion) and the scores are
renormalized after each finding.
"""
import logging
import math
from typing import Dict, Iterable, List, Tuple

from .models import BeliefState, ClinicalFindings, Condition, KnowledgeBase, NEUTRAL_WEIGHT


logger = logging.getLogger(__name__)


def uniform_beliefs(condition_ids: Iterable[str]) -> Dict[str, float]:
    ids = list(condition_ids)
    if not ids:
        return {}
    return {cid: 1.0 / len(ids) for cid in ids}


def _normalize(scores: Dict[str, float]) -> Tuple[Dict[str, float], bool]:
    total = math.fsum(scores.values())
    if total <= 0 or not math.isfinite(total):
        return scores, False
    return {cid: score / total for cid, score in scores.items()}, True


def prior_beliefs(knowledge_base: KnowledgeBase) -> Dict[str, float]:
    priors = {c.id: c.prior for c in knowledge_base.conditions}
    normalized, ok = _normalize(priors)
    if not ok:
        return uniform_beliefs(priors)
    return normalized


def update_beliefs(findings: ClinicalFindings, knowledge_base: KnowledgeBase) -> BeliefState:
    """
    Compute the posterior over every condition from the accumulated findings.

    Args:
        findings: Findings recorded so far in the session
        knowledge_base: Catalog supplying priors, likelihoods and symptom combinations

    Returns:
        BeliefState whose posteriors sum to 1. ``insufficient_data`` is set when
        no finding carries evidence yet; ``low_confidence`` when every score
        collapsed to zero and the uniform fallback was used.
    """
    scores = prior_beliefs(knowledge_base)
    evidence = findings.evidence_keys()
    if not evidence:
        return BeliefState(posteriors=scores, insufficient_data=True)

    for key in evidence:
        for condition in knowledge_base.conditions:
            scores[condition.id] *= condition.likelihood(key)
        scores, ok = _normalize(scores)
        if not ok:
            logger.warning("All condition scores collapsed at evidence '%s'; falling back to uniform beliefs", key)
            return BeliefState(posteriors=uniform_beliefs(scores), low_confidence=True)

    present = set(evidence)
    for combination in knowledge_base.combinations:
        if all(key in present for key in combination.finding_keys):
            scores[combination.condition_id] *= combination.weight
            scores, ok = _normalize(scores)
            if not ok:
                logger.warning("Symptom combination for '%s' zeroed all scores; falling back to uniform beliefs",
                               combination.condition_id)
                return BeliefState(posteriors=uniform_beliefs(scores), low_confidence=True)

    return BeliefState(posteriors=scores)


def rank_conditions(posteriors: Dict[str, float]) -> List[Tuple[str, float]]:
    # Highest posterior first, ties broken by condition id
    return sorted(posteriors.items(), key=lambda item: (-item[1], item[0]))


def top_conditions(posteriors: Dict[str, float], k: int) -> List[Tuple[str, float]]:
    return rank_conditions(posteriors)[:k]


def entropy(posteriors: Dict[str, float]) -> float:
    return -math.fsum(p * math.log2(p) for p in posteriors.values() if p > 0)


def diagnostic_confidence(posteriors: Dict[str, float]) -> float:
    """Combine the leading probability with how peaked the distribution is."""
    if not posteriors:
        return 0.0
    max_p = max(posteriors.values())
    max_entropy = math.log2(len(posteriors))
    peakedness = 1 - entropy(posteriors) / max_entropy if max_entropy > 0 else 1.0
    return math.sqrt(max(0.0, max_p * peakedness))


def confidence_label(probability: float) -> str:
    if probability > 0.8:
        return "Very High"
    if probability > 0.6:
        return "High"
    if probability > 0.4:
        return "Moderate"
    if probability > 0.2:
        return "Low"
    return "Very Low"


def supporting_findings(condition: Condition, evidence: Iterable[str], conditions: Iterable[Condition]) -> List[str]:
    """Evidence keys that favour ``condition`` over neutral or over every rival."""
    rivals = [c for c in conditions if c.id != condition.id]
    supporting: List[str] = []
    for key in evidence:
        weight = condition.likelihood(key)
        if weight <= 0 or key in supporting:
            continue
        if weight > NEUTRAL_WEIGHT or (rivals and all(weight > r.likelihood(key) for r in rivals)):
            supporting.append(key)
    return supporting
