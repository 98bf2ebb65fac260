"""Building caller-facing results from session state. Nothing here mutates the session."""
from typing import List, Optional

from ddx_dialogue.application.schemas import (
    ConversationSummary,
    DiagnosisResult,
    DiagnosticsSnapshot,
    DialogueState,
    Outcome,
    RankedCondition,
    Recommendation,
    RecommendationKind,
    ReferralResult,
)
from ddx_dialogue.domain.belief import (
    confidence_label,
    diagnostic_confidence,
    rank_conditions,
    supporting_findings,
)
from ddx_dialogue.domain.models import AssessmentSession, KnowledgeBase, UrgencyLevel
from ddx_dialogue.domain.rules import RedFlagMonitor


STRONG_EVIDENCE_WEIGHT = 2.0
SPECIFIC_RECOMMENDATION_CONFIDENCE = 0.6
SEVERE_PAIN = 7
LIMITING_IMPACTS = {"moderate", "severe"}
MAX_KEY_FINDINGS = 5


def ranked_conditions(session: AssessmentSession, knowledge_base: KnowledgeBase,
                      limit: Optional[int] = None) -> List[RankedCondition]:
    evidence = session.findings.evidence_keys()
    ranked: List[RankedCondition] = []
    for condition_id, posterior in rank_conditions(session.posteriors):
        condition = knowledge_base.condition(condition_id)
        if condition is None:
            continue
        ranked.append(RankedCondition(
            condition_id=condition.id,
            name=condition.name,
            posterior=min(max(posterior, 0.0), 1.0),
            body_region=condition.body_region,
            supporting_findings=supporting_findings(condition, evidence, knowledge_base.conditions),
            confidence_label=confidence_label(posterior),
        ))
    return ranked[:limit] if limit is not None else ranked


def diagnostic_summary(ranked: List[RankedCondition], insufficient_data: bool = False) -> str:
    if not ranked or insufficient_data:
        return "Insufficient information for diagnosis. More assessment needed."

    top = ranked[0]
    if top.posterior > 0.8:
        return f"Strong evidence suggests {top.name} ({top.posterior:.0%} probability)"
    if top.posterior > 0.6:
        return f"Likely diagnosis: {top.name} ({top.posterior:.0%} probability)"
    if len(ranked) > 1:
        second = ranked[1]
        return (f"Differential diagnosis between {top.name} ({top.posterior:.0%}) "
                f"and {second.name} ({second.posterior:.0%})")
    return f"Possible diagnosis: {top.name} ({top.posterior:.0%} probability). Further assessment recommended."


def evidence_quality(session: AssessmentSession, knowledge_base: KnowledgeBase) -> str:
    asked = session.questions_asked
    has_region = session.body_region is not None

    strong = False
    evidence = session.findings.evidence_keys()
    for condition_id, _ in rank_conditions(session.posteriors)[:2]:
        condition = knowledge_base.condition(condition_id)
        if condition and any(condition.likelihood(key) >= STRONG_EVIDENCE_WEIGHT for key in evidence):
            strong = True

    if asked >= 8 and has_region and strong:
        return "Strong evidence base"
    if asked >= 5 and has_region:
        return "Adequate evidence base"
    if asked >= 3:
        return "Limited evidence base"
    return "Insufficient evidence"


def key_findings(session: AssessmentSession, knowledge_base: KnowledgeBase,
                 limit: int = MAX_KEY_FINDINGS) -> List[str]:
    """Prompts of the questions that produced a positive finding, in the order they were answered."""
    positive_questions = {f.question_id for f in session.findings.all_findings() if f.positive}
    prompts: List[str] = []
    for record in session.history:
        question = knowledge_base.question(record.question_id)
        if question is not None and record.question_id in positive_questions:
            prompts.append(question.prompt)
    return prompts[:limit]


def build_conversation_summary(session: AssessmentSession, knowledge_base: KnowledgeBase,
                               confidence: float) -> ConversationSummary:
    duration = 0
    if session.history:
        elapsed = session.history[-1].answered_at - session.history[0].answered_at
        duration = max(int(round(elapsed.total_seconds())), 0)
    return ConversationSummary(
        total_questions=len(session.history),
        duration_seconds=duration,
        key_findings=key_findings(session, knowledge_base),
        final_confidence=confidence,
    )


def build_recommendations(session: AssessmentSession, ranked: List[RankedCondition],
                          confidence: float) -> Recommendation:
    """
    Next steps for the patient once the dialogue ends with a differential.

    Below ``SPECIFIC_RECOMMENDATION_CONFIDENCE`` (or without a leading
    condition) the advice stays general; otherwise it names the top condition.
    Findings that need extra care append their own steps to either variant.
    """
    findings = session.findings
    extra_steps: List[str] = []
    intensity = findings.pain.intensity
    if intensity is not None and intensity >= SEVERE_PAIN:
        extra_steps.append("Ask a pharmacist or GP about pain relief while you wait for an appointment")
    if findings.neurological.has_deficit:
        extra_steps.append("Tell your clinician about any numbness, tingling or weakness, and seek help "
                           "quickly if it spreads or gets worse")
    if findings.functional.impact in LIMITING_IMPACTS:
        extra_steps.append("Ask about work or activity modifications while you recover")

    top = ranked[0] if ranked else None
    if top is None or session.insufficient_data or confidence < SPECIFIC_RECOMMENDATION_CONFIDENCE:
        return Recommendation(
            kind=RecommendationKind.GENERAL,
            message=("Based on your responses, we recommend a comprehensive physiotherapy assessment "
                     "to determine the best treatment approach."),
            next_steps=[
                "Schedule an appointment with a physiotherapist",
                "Avoid activities that worsen your symptoms",
                "Apply ice for acute injuries, heat for stiffness",
                "Gentle movement as tolerated",
            ] + extra_steps,
        )

    return Recommendation(
        kind=RecommendationKind.SPECIFIC,
        condition=top.name,
        message=(f"Your symptoms suggest {top.name}. A professional physiotherapy assessment can "
                 "confirm the diagnosis and provide targeted treatment."),
        next_steps=[
            "Schedule an appointment with a physiotherapist for confirmation",
            "Avoid activities that worsen your symptoms",
            "Gentle movement as tolerated, avoid complete rest",
            "Apply ice for acute pain (first 48-72 hours) or heat for chronic stiffness",
            "Keep track of your symptoms and any changes",
        ] + extra_steps,
        note=("This is a preliminary assessment based on your reported symptoms. A hands-on clinical "
              "examination is recommended for accurate diagnosis and treatment planning."),
    )


def build_diagnosis(session: AssessmentSession, knowledge_base: KnowledgeBase) -> DiagnosisResult:
    ranked = ranked_conditions(session, knowledge_base)
    confidence = round(diagnostic_confidence(session.posteriors), 4)
    return DiagnosisResult(
        ranked_conditions=ranked,
        confidence=confidence,
        summary=diagnostic_summary(ranked, session.insufficient_data),
        evidence_quality=evidence_quality(session, knowledge_base),
        questions_asked=session.questions_asked,
        insufficient_data=session.insufficient_data,
        low_confidence=session.low_confidence,
        recommendations=build_recommendations(session, ranked, confidence),
        conversation_summary=build_conversation_summary(session, knowledge_base, confidence),
    )


def build_referral(session: AssessmentSession, knowledge_base: KnowledgeBase,
                   monitor: RedFlagMonitor) -> ReferralResult:
    triggering = monitor.triggering_patterns(session.red_flags)
    triggering_ids = [p.id for p in triggering]
    names = [p.name for p in triggering]

    if session.urgency == UrgencyLevel.URGENT:
        advice = "Please call emergency services or go to the nearest emergency department now."
    else:
        advice = "Please contact your doctor or an urgent care service today."
    message = (
        f"Based on your responses ({', '.join(names) or 'red flag findings'}), "
        f"this needs medical attention before any further assessment. {advice}"
    )

    actions: List[str] = []
    for pattern in triggering:
        if pattern.action not in actions:
            actions.append(pattern.action)

    associated = [
        c.id for c in knowledge_base.conditions
        if set(c.red_flag_triggers) & set(session.red_flags)
    ]

    return ReferralResult(
        urgency=session.urgency or UrgencyLevel.HIGH,
        triggering_pattern_ids=triggering_ids,
        triggering_pattern_names=names,
        detected_red_flags=list(session.red_flags),
        message=message,
        actions=actions,
        associated_conditions=associated,
        questions_asked=session.questions_asked,
    )


def build_snapshot(session: AssessmentSession, knowledge_base: KnowledgeBase, state: DialogueState,
                   outcome: Optional[Outcome], top_k: int) -> DiagnosticsSnapshot:
    top = ranked_conditions(session, knowledge_base, limit=top_k)
    return DiagnosticsSnapshot(
        session_id=session.session_id,
        state=state,
        outcome=outcome,
        top_conditions=top,
        confidence=round(diagnostic_confidence(session.posteriors), 4),
        completion_percentage=session.completion_percentage,
        questions_asked=session.questions_asked,
        red_flags=list(session.red_flags),
        urgency=session.urgency,
        insufficient_data=session.insufficient_data,
        low_confidence=session.low_confidence,
        missing_critical=list(session.missing_critical),
        evidence_quality=evidence_quality(session, knowledge_base),
        summary=diagnostic_summary(top, session.insufficient_data),
    )
