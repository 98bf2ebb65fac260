"""Built-in musculoskeletal screening catalog (lumbar, cervical, shoulder and knee).

Likelihoods are weights relative to a neutral 1.0: above 1 the finding favours
the condition, below 1 it counts against it.
"""
from typing import Dict, List

from ddx_dialogue.domain.models import (
    AnswerOption,
    Condition,
    KnowledgeBase,
    PromptType,
    QuestionCategory,
    QuestionTemplate,
    RedFlagPattern,
    SymptomCombination,
    UrgencyLevel,
)


REGIONS = ["lumbar_spine", "cervical_spine", "shoulder", "knee"]

EMERGENCY_ACTION = "Call emergency services or attend the nearest emergency department now."
SAME_DAY_ACTION = "Arrange a same-day review with a doctor."


def _region_weights(home: str, in_region: float = 4.0, out_of_region: float = 0.05) -> Dict[str, float]:
    return {
        f"pain_location={region}": in_region if region == home else out_of_region
        for region in REGIONS
    }


def _options(*values: str, red_flags: Dict[str, str] | None = None) -> List[AnswerOption]:
    red_flags = red_flags or {}
    return [AnswerOption(value=v, red_flag=red_flags.get(v)) for v in values]


def default_conditions() -> List[Condition]:
    return [
        Condition(
            id="nonspecific_low_back_pain",
            name="Non-specific low back pain",
            prior=0.25,
            body_region="lumbar_spine",
            likelihoods={
                **_region_weights("lumbar_spine"),
                "pain_radiation=none": 2.0,
                "pain_radiation=buttock_thigh": 1.3,
                "pain_radiation=below_knee": 0.3,
                "onset_mechanism=lifting": 1.8,
                "onset_mechanism=gradual": 1.2,
                "pain_quality=aching": 1.6,
                "pain_quality=burning": 0.5,
                "aggravating=bending": 1.5,
                "aggravating=sitting": 1.3,
                "relieving=movement": 1.5,
                "numbness_tingling": 0.4,
                "numbness_tingling=no": 1.4,
                "motor_weakness": 0.5,
                "rom_flexion_limited": 1.5,
                "pain_night": 0.7,
                "pain_intensity=mild": 1.3,
                "pain_intensity=moderate": 1.2,
            },
        ),
        Condition(
            id="lumbar_radiculopathy",
            name="Lumbar radiculopathy (sciatica)",
            prior=0.12,
            body_region="lumbar_spine",
            likelihoods={
                **_region_weights("lumbar_spine"),
                "pain_radiation=none": 0.2,
                "pain_radiation=buttock_thigh": 1.2,
                "pain_radiation=below_knee": 4.0,
                "pain_quality=burning": 2.0,
                "pain_quality=sharp": 1.8,
                "aggravating=sitting": 1.6,
                "aggravating=bending": 1.5,
                "numbness_tingling": 3.0,
                "numbness_tingling=no": 0.4,
                "motor_weakness": 2.0,
                "rom_flexion_limited": 1.6,
                "pain_intensity=severe": 1.5,
                "onset_mechanism=lifting": 1.5,
            },
        ),
        Condition(
            id="lumbar_spinal_stenosis",
            name="Lumbar spinal stenosis",
            prior=0.06,
            body_region="lumbar_spine",
            likelihoods={
                **_region_weights("lumbar_spine"),
                "age_over_50": 3.0,
                "age_over_50=no": 0.2,
                "pain_radiation=buttock_thigh": 1.8,
                "pain_radiation=below_knee": 1.5,
                "walking_tolerance=under_10_min": 3.5,
                "walking_tolerance=10_to_30_min": 2.0,
                "walking_tolerance=unlimited": 0.3,
                "aggravating=walking": 2.5,
                "aggravating=standing": 2.0,
                "relieving=sitting_bending_forward": 3.5,
                "onset_mechanism=gradual": 1.8,
                "pain_duration=chronic": 1.8,
                "numbness_tingling": 1.8,
            },
        ),
        Condition(
            id="cervical_radiculopathy",
            name="Cervical radiculopathy",
            prior=0.06,
            body_region="cervical_spine",
            likelihoods={
                **_region_weights("cervical_spine"),
                "pain_radiation=arm": 3.5,
                "pain_radiation=hand": 4.0,
                "pain_radiation=none": 0.2,
                "numbness_tingling": 3.0,
                "numbness_tingling=no": 0.4,
                "motor_weakness": 2.0,
                "pain_quality=burning": 2.0,
                "aggravating=neck_movement": 1.8,
                "rom_neck_rotation_limited": 1.5,
            },
        ),
        Condition(
            id="mechanical_neck_pain",
            name="Mechanical neck pain",
            prior=0.12,
            body_region="cervical_spine",
            likelihoods={
                **_region_weights("cervical_spine"),
                "pain_radiation=none": 2.0,
                "pain_radiation=hand": 0.3,
                "numbness_tingling": 0.5,
                "numbness_tingling=no": 1.4,
                "pain_quality=stiffness": 2.0,
                "pain_quality=aching": 1.5,
                "aggravating=neck_movement": 1.6,
                "aggravating=sitting": 1.4,
                "rom_neck_rotation_limited": 1.8,
                "onset_mechanism=gradual": 1.4,
            },
        ),
        Condition(
            id="rotator_cuff_tendinopathy",
            name="Rotator cuff tendinopathy",
            prior=0.12,
            body_region="shoulder",
            likelihoods={
                **_region_weights("shoulder"),
                "painful_arc": 3.0,
                "painful_arc=no": 0.4,
                "aggravating=overhead": 2.5,
                "pain_night": 1.8,
                "rom_external_rotation_limited": 0.6,
                "rom_external_rotation_limited=no": 1.6,
                "onset_mechanism=overuse": 2.5,
                "onset_mechanism=gradual": 1.3,
                "joint_swelling": 0.6,
            },
        ),
        Condition(
            id="frozen_shoulder",
            name="Adhesive capsulitis (frozen shoulder)",
            prior=0.05,
            body_region="shoulder",
            likelihoods={
                **_region_weights("shoulder"),
                "rom_external_rotation_limited": 5.0,
                "rom_external_rotation_limited=no": 0.1,
                "painful_arc": 1.0,
                "pain_night": 2.0,
                "age_over_50": 1.8,
                "onset_mechanism=gradual": 1.8,
                "pain_quality=stiffness": 2.5,
                "aggravating=overhead": 1.5,
            },
        ),
        Condition(
            id="knee_osteoarthritis",
            name="Knee osteoarthritis",
            prior=0.12,
            body_region="knee",
            likelihoods={
                **_region_weights("knee"),
                "age_over_50": 3.0,
                "age_over_50=no": 0.3,
                "pain_quality=stiffness": 2.0,
                "pain_duration=chronic": 2.0,
                "onset_mechanism=gradual": 1.8,
                "joint_swelling": 1.8,
                "joint_clicking": 1.6,
                "aggravating=stairs": 1.6,
                "aggravating=walking": 1.8,
                "rom_knee_flexion_limited": 2.0,
            },
        ),
        Condition(
            id="patellofemoral_pain",
            name="Patellofemoral pain syndrome",
            prior=0.08,
            body_region="knee",
            likelihoods={
                **_region_weights("knee"),
                "age_over_50": 0.3,
                "age_over_50=no": 1.8,
                "aggravating=stairs": 2.5,
                "aggravating=sitting": 2.0,
                "aggravating=kneeling": 2.2,
                "onset_mechanism=overuse": 2.0,
                "joint_swelling": 0.6,
                "joint_clicking": 1.3,
            },
        ),
        Condition(
            id="cauda_equina_syndrome",
            name="Cauda equina syndrome",
            prior=0.01,
            body_region="lumbar_spine",
            likelihoods={
                **_region_weights("lumbar_spine", in_region=3.0),
                "bowel_bladder_dysfunction": 20.0,
                "bowel_bladder_dysfunction=no": 0.1,
                "saddle_anaesthesia": 15.0,
                "saddle_anaesthesia=no": 0.2,
                "pain_radiation=below_knee": 2.0,
                "motor_weakness": 2.5,
                "progressive_weakness": 4.0,
                "numbness_tingling": 2.0,
            },
            red_flag_triggers=["bowel_bladder", "saddle_anaesthesia", "progressive_weakness"],
        ),
        Condition(
            id="spinal_malignancy",
            name="Spinal malignancy",
            prior=0.01,
            body_region="general",
            likelihoods={
                "pain_location=lumbar_spine": 2.0,
                "pain_location=cervical_spine": 1.5,
                "pain_location=shoulder": 0.3,
                "pain_location=knee": 0.1,
                "cancer_history": 10.0,
                "cancer_history=no": 0.3,
                "systemic_symptoms": 5.0,
                "systemic_symptoms=no": 0.5,
                "pain_night": 3.0,
                "pain_night=no": 0.4,
                "age_over_50": 2.5,
                "relieving=nothing": 2.5,
                "pain_intensity=severe": 1.5,
            },
            red_flag_triggers=["cancer_history", "fever", "weight_loss", "night_pain"],
        ),
    ]


def default_questions() -> List[QuestionTemplate]:
    return [
        # Safety screening
        QuestionTemplate(
            id="rf_general_screen",
            category=QuestionCategory.RED_FLAG_SCREENING,
            prompt="Before we start, do you have any of the following? Select all that apply.",
            prompt_type=PromptType.MULTI_CHOICE,
            target_finding_keys=["red_flag_screen"],
            topic="red_flag_screening",
            priority=10,
            red_flag=True,
            options=_options(
                "none", "fever", "unexplained_weight_loss", "bladder_or_bowel_changes", "chest_pain",
                red_flags={
                    "fever": "fever",
                    "unexplained_weight_loss": "weight_loss",
                    "bladder_or_bowel_changes": "bowel_bladder",
                    "chest_pain": "chest_pain",
                },
            ),
        ),
        QuestionTemplate(
            id="rf_bowel_bladder",
            category=QuestionCategory.RED_FLAG_SCREENING,
            finding_category="neurological",
            prompt="Have you had any new difficulty controlling your bladder or bowels?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["bowel_bladder_dysfunction"],
            topic="red_flag_screening",
            priority=9,
            discriminative_power=5,
            red_flag=True,
            body_regions=["lumbar_spine"],
        ),
        QuestionTemplate(
            id="rf_saddle_numbness",
            category=QuestionCategory.RED_FLAG_SCREENING,
            finding_category="neurological",
            prompt="Do you have numbness around your groin, buttocks or inner thighs (the 'saddle' area)?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["saddle_anaesthesia"],
            topic="red_flag_screening",
            priority=9,
            discriminative_power=5,
            red_flag=True,
            body_regions=["lumbar_spine"],
        ),
        QuestionTemplate(
            id="rf_fever_weight_loss",
            category=QuestionCategory.RED_FLAG_SCREENING,
            prompt="Have you had fevers, night sweats or weight loss you can't explain?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["systemic_symptoms"],
            topic="red_flag_screening",
            priority=8,
            discriminative_power=4,
            red_flag=True,
        ),
        QuestionTemplate(
            id="rf_cancer_history",
            category=QuestionCategory.RED_FLAG_SCREENING,
            prompt="Have you ever been diagnosed with or treated for cancer?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["cancer_history"],
            topic="red_flag_screening",
            priority=8,
            discriminative_power=4,
            red_flag=True,
        ),
        QuestionTemplate(
            id="rf_major_trauma",
            category=QuestionCategory.RED_FLAG_SCREENING,
            prompt="Did this start after a major accident, such as a car crash or a fall from a height?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["major_trauma"],
            topic="red_flag_screening",
            priority=7,
            discriminative_power=3,
            red_flag=True,
        ),
        # Pain
        QuestionTemplate(
            id="pain_severity",
            category=QuestionCategory.PAIN,
            prompt="On a scale of 0 to 10, how bad is your pain right now?",
            prompt_type=PromptType.NUMERIC_SCALE,
            target_finding_keys=["pain_intensity"],
            topic="pain_severity",
            priority=6,
            discriminative_power=1,
        ),
        QuestionTemplate(
            id="pain_location",
            category=QuestionCategory.PAIN,
            prompt="Where is your pain mainly located?",
            prompt_type=PromptType.SINGLE_CHOICE,
            target_finding_keys=["pain_location"],
            topic="pain_location",
            priority=6,
            discriminative_power=5,
            options=[
                AnswerOption(value="lumbar_spine", label="Lower back"),
                AnswerOption(value="cervical_spine", label="Neck"),
                AnswerOption(value="shoulder", label="Shoulder"),
                AnswerOption(value="knee", label="Knee"),
            ],
        ),
        QuestionTemplate(
            id="pain_radiation",
            category=QuestionCategory.PAIN,
            prompt="Does the pain spread anywhere else?",
            prompt_type=PromptType.SINGLE_CHOICE,
            target_finding_keys=["pain_radiation"],
            priority=5,
            discriminative_power=4,
            body_regions=["lumbar_spine", "cervical_spine"],
            options=[
                AnswerOption(value="none", label="No, it stays in one place"),
                AnswerOption(value="buttock_thigh", label="Into the buttock or thigh"),
                AnswerOption(value="below_knee", label="Down the leg below the knee"),
                AnswerOption(value="arm", label="Into the arm"),
                AnswerOption(value="hand", label="Down to the hand or fingers"),
            ],
        ),
        QuestionTemplate(
            id="pain_night",
            category=QuestionCategory.PAIN,
            prompt="Does the pain wake you at night?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["pain_night"],
            priority=4,
            discriminative_power=3,
        ),
        QuestionTemplate(
            id="pain_quality",
            category=QuestionCategory.PAIN,
            prompt="Which word best describes the pain?",
            prompt_type=PromptType.SINGLE_CHOICE,
            target_finding_keys=["pain_quality"],
            priority=3,
            discriminative_power=2,
            options=_options("aching", "sharp", "burning", "stiffness"),
        ),
        QuestionTemplate(
            id="onset_mechanism",
            category=QuestionCategory.HISTORY,
            prompt="How did the problem start?",
            prompt_type=PromptType.SINGLE_CHOICE,
            target_finding_keys=["onset_mechanism"],
            topic="onset_mechanism",
            priority=5,
            discriminative_power=3,
            options=[
                AnswerOption(value="gradual", label="Gradually, for no clear reason"),
                AnswerOption(value="lifting", label="Lifting or bending"),
                AnswerOption(value="overuse", label="Repetitive use or a new activity"),
                AnswerOption(value="sudden_injury", label="A sudden injury"),
            ],
        ),
        QuestionTemplate(
            id="pain_duration",
            category=QuestionCategory.HISTORY,
            prompt="How long have you had this problem?",
            prompt_type=PromptType.SINGLE_CHOICE,
            target_finding_keys=["pain_duration"],
            priority=3,
            discriminative_power=2,
            options=[
                AnswerOption(value="acute", label="Less than 6 weeks"),
                AnswerOption(value="subacute", label="6 to 12 weeks"),
                AnswerOption(value="chronic", label="More than 3 months"),
            ],
        ),
        QuestionTemplate(
            id="aggravating_factors",
            category=QuestionCategory.PAIN,
            prompt="What makes the pain worse? Select all that apply.",
            prompt_type=PromptType.MULTI_CHOICE,
            target_finding_keys=["aggravating"],
            topic="aggravating_factors",
            priority=4,
            discriminative_power=3,
            options=_options(
                "bending", "sitting", "walking", "standing", "overhead", "stairs", "kneeling",
                "neck_movement", "none",
            ),
        ),
        QuestionTemplate(
            id="relieving_factors",
            category=QuestionCategory.PAIN,
            prompt="What eases the pain?",
            prompt_type=PromptType.SINGLE_CHOICE,
            target_finding_keys=["relieving"],
            topic="relieving_factors",
            priority=3,
            discriminative_power=3,
            options=[
                AnswerOption(value="rest", label="Rest"),
                AnswerOption(value="movement", label="Keeping moving"),
                AnswerOption(value="sitting_bending_forward", label="Sitting down or bending forward"),
                AnswerOption(value="medication", label="Pain medication"),
                AnswerOption(value="nothing", label="Nothing helps"),
            ],
        ),
        # Neurological
        QuestionTemplate(
            id="neuro_numbness",
            category=QuestionCategory.NEUROLOGICAL,
            prompt="Do you have any numbness or pins and needles?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["numbness_tingling"],
            priority=5,
            discriminative_power=4,
        ),
        QuestionTemplate(
            id="neuro_progressive_weakness",
            category=QuestionCategory.NEUROLOGICAL,
            prompt="Is any weakness in your arms or legs getting steadily worse?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["progressive_weakness"],
            priority=8,
            discriminative_power=4,
            red_flag=True,
        ),
        QuestionTemplate(
            id="neuro_symptom_description",
            category=QuestionCategory.NEUROLOGICAL,
            prompt="In your own words, describe any unusual sensations you have noticed.",
            prompt_type=PromptType.FREE_TEXT,
            target_finding_keys=["neuro_description"],
            priority=2,
        ),
        # Range of motion
        QuestionTemplate(
            id="rom_lumbar_flexion",
            category=QuestionCategory.RANGE_OF_MOTION,
            prompt="Is bending forward to touch your knees limited by pain or stiffness?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["rom_flexion_limited"],
            priority=3,
            discriminative_power=2,
            body_regions=["lumbar_spine"],
        ),
        QuestionTemplate(
            id="rom_neck_rotation",
            category=QuestionCategory.RANGE_OF_MOTION,
            prompt="Is turning your head to either side limited, for example when checking your blind spot while driving?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["rom_neck_rotation_limited"],
            priority=3,
            discriminative_power=2,
            body_regions=["cervical_spine"],
        ),
        QuestionTemplate(
            id="rom_painful_arc",
            category=QuestionCategory.RANGE_OF_MOTION,
            prompt="Is it painful to lift your arm out to the side, especially between shoulder and head height?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["painful_arc"],
            priority=4,
            discriminative_power=4,
            body_regions=["shoulder"],
        ),
        QuestionTemplate(
            id="rom_shoulder_rotation",
            category=QuestionCategory.RANGE_OF_MOTION,
            prompt="Is it hard to reach behind your back or turn your arm outwards, even when someone helps you?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["rom_external_rotation_limited"],
            priority=4,
            discriminative_power=5,
            body_regions=["shoulder"],
        ),
        QuestionTemplate(
            id="rom_knee_flexion",
            category=QuestionCategory.RANGE_OF_MOTION,
            prompt="Are you unable to bend your knee fully?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["rom_knee_flexion_limited"],
            priority=3,
            discriminative_power=2,
            body_regions=["knee"],
        ),
        # Motor and objective signs
        QuestionTemplate(
            id="motor_weakness",
            category=QuestionCategory.MOTOR,
            prompt="Have you noticed any weakness, such as tripping over your foot or dropping things?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["motor_weakness"],
            priority=4,
            discriminative_power=3,
            body_regions=["lumbar_spine", "cervical_spine"],
        ),
        QuestionTemplate(
            id="obj_swelling",
            category=QuestionCategory.OBJECTIVE,
            prompt="Is the joint visibly swollen?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["joint_swelling"],
            priority=3,
            discriminative_power=2,
            body_regions=["knee", "shoulder"],
        ),
        QuestionTemplate(
            id="obj_clicking",
            category=QuestionCategory.OBJECTIVE,
            prompt="Does the knee click, grind or creak when it moves?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["joint_clicking"],
            priority=2,
            discriminative_power=2,
            body_regions=["knee"],
        ),
        # Function
        QuestionTemplate(
            id="functional_impact",
            category=QuestionCategory.FUNCTIONAL,
            prompt="How much does the problem limit your daily activities?",
            prompt_type=PromptType.SINGLE_CHOICE,
            target_finding_keys=["functional_limitation"],
            topic="functional_impact",
            priority=4,
            discriminative_power=1,
            options=[
                AnswerOption(value="minimal", label="Hardly at all"),
                AnswerOption(value="moderate", label="Some activities are difficult"),
                AnswerOption(value="severe", label="I can't manage most activities"),
            ],
        ),
        QuestionTemplate(
            id="functional_walking",
            category=QuestionCategory.FUNCTIONAL,
            prompt="How long can you walk before the pain stops you?",
            prompt_type=PromptType.SINGLE_CHOICE,
            target_finding_keys=["walking_tolerance"],
            priority=3,
            discriminative_power=3,
            body_regions=["lumbar_spine", "knee"],
            options=[
                AnswerOption(value="unlimited", label="As long as I like"),
                AnswerOption(value="over_30_min", label="More than 30 minutes"),
                AnswerOption(value="10_to_30_min", label="10 to 30 minutes"),
                AnswerOption(value="under_10_min", label="Less than 10 minutes"),
            ],
        ),
        # History
        QuestionTemplate(
            id="hx_age_over_50",
            category=QuestionCategory.HISTORY,
            prompt="Are you over 50 years old?",
            prompt_type=PromptType.YES_NO,
            target_finding_keys=["age_over_50"],
            priority=4,
            discriminative_power=3,
        ),
        QuestionTemplate(
            id="hx_previous_treatment",
            category=QuestionCategory.HISTORY,
            prompt="Have you had any treatment for this problem before?",
            prompt_type=PromptType.SINGLE_CHOICE,
            target_finding_keys=["previous_treatment"],
            topic="previous_treatment",
            priority=2,
            options=[
                AnswerOption(value="none", label="No treatment"),
                AnswerOption(value="physiotherapy", label="Physiotherapy"),
                AnswerOption(value="injection", label="An injection"),
                AnswerOption(value="surgery", label="Surgery"),
            ],
        ),
        QuestionTemplate(
            id="hx_medications",
            category=QuestionCategory.HISTORY,
            prompt="Which medications are you currently taking?",
            prompt_type=PromptType.FREE_TEXT,
            target_finding_keys=["medications"],
            topic="medications",
            priority=1,
        ),
    ]


def default_red_flag_patterns() -> List[RedFlagPattern]:
    return [
        RedFlagPattern(
            id="bowel_bladder",
            name="Bladder or bowel dysfunction",
            urgency=UrgencyLevel.URGENT,
            keywords=["incontinence", "incontinent", "can't control my bladder", "bladder control", "bowel control"],
            patterns=[r"\b(can'?t|cannot|unable to) (pee|urinate|pass urine)\b"],
            finding_key="bowel_bladder_dysfunction",
            action=EMERGENCY_ACTION,
        ),
        RedFlagPattern(
            id="saddle_anaesthesia",
            name="Saddle anaesthesia",
            urgency=UrgencyLevel.URGENT,
            keywords=["saddle", "numb groin", "numbness in my groin", "numb between my legs"],
            finding_key="saddle_anaesthesia",
            action=EMERGENCY_ACTION,
        ),
        RedFlagPattern(
            id="chest_pain",
            name="Chest pain",
            urgency=UrgencyLevel.URGENT,
            keywords=["chest pain", "chest tightness", "crushing pain"],
            action=EMERGENCY_ACTION,
        ),
        RedFlagPattern(
            id="progressive_weakness",
            name="Progressive neurological weakness",
            urgency=UrgencyLevel.HIGH,
            categories=[QuestionCategory.NEUROLOGICAL, QuestionCategory.MOTOR],
            keywords=["getting weaker", "weakness is getting worse", "foot drop"],
            finding_key="progressive_weakness",
            action=SAME_DAY_ACTION,
        ),
        RedFlagPattern(
            id="fever",
            name="Fever or systemic illness",
            urgency=UrgencyLevel.HIGH,
            keywords=["fever", "night sweats", "chills"],
            finding_key="systemic_symptoms",
            action=SAME_DAY_ACTION,
        ),
        RedFlagPattern(
            id="cancer_history",
            name="History of cancer",
            urgency=UrgencyLevel.HIGH,
            keywords=["cancer", "tumour", "tumor", "chemotherapy"],
            finding_key="cancer_history",
            action="Arrange an urgent review with your doctor to rule out serious spinal pathology.",
        ),
        RedFlagPattern(
            id="major_trauma",
            name="Major trauma",
            urgency=UrgencyLevel.HIGH,
            keywords=["car crash", "road traffic", "fell from a height", "fall from a height"],
            finding_key="major_trauma",
            action="Seek an urgent medical assessment; imaging may be needed to rule out a fracture.",
        ),
        RedFlagPattern(
            id="weight_loss",
            name="Unexplained weight loss",
            urgency=UrgencyLevel.MODERATE,
            keywords=["weight loss", "lost weight", "losing weight"],
            action="Mention the weight loss to your doctor at your next appointment.",
        ),
        RedFlagPattern(
            id="trauma",
            name="Recent injury",
            urgency=UrgencyLevel.MODERATE,
            patterns=[r"\bfell\b", r"\bfall(ing)?\b", r"\baccident\b", r"\binjur(y|ed)\b"],
            action="Let your physiotherapist know about the injury.",
        ),
        RedFlagPattern(
            id="numbness",
            name="Numbness or tingling",
            urgency=UrgencyLevel.MODERATE,
            keywords=["numb", "tingl", "pins and needles", "no feeling"],
            action="Your physiotherapist will check nerve function at your assessment.",
        ),
        RedFlagPattern(
            id="night_pain",
            name="Constant night pain",
            urgency=UrgencyLevel.LOW,
            keywords=["at night", "wakes me", "keeps me awake"],
            action="Keep a note of how often the pain wakes you.",
        ),
    ]


def default_combinations() -> List[SymptomCombination]:
    return [
        SymptomCombination(
            condition_id="cauda_equina_syndrome",
            finding_keys=["bowel_bladder_dysfunction", "saddle_anaesthesia"],
            weight=3.0,
        ),
        SymptomCombination(
            condition_id="lumbar_spinal_stenosis",
            finding_keys=["walking_tolerance=under_10_min", "relieving=sitting_bending_forward"],
            weight=2.0,
        ),
        SymptomCombination(
            condition_id="frozen_shoulder",
            finding_keys=["rom_external_rotation_limited", "pain_night"],
            weight=1.5,
        ),
    ]


def build_default_knowledge_base() -> KnowledgeBase:
    return KnowledgeBase(
        conditions=default_conditions(),
        questions=default_questions(),
        red_flag_patterns=default_red_flag_patterns(),
        combinations=default_combinations(),
    )
