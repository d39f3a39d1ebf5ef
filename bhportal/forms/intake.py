"""
Resident intake assessment

Seventeen steps from demographics to the wellness review and signatures,
including the PHQ-9 depression screening on step 11.
"""

import datetime

from marshmallow import ValidationError, fields, validate, validates_schema

from .fields import (
    checkboxes,
    date,
    flag,
    group,
    optional_email,
    required_date,
    required_text,
    rows,
    text,
)
from .phq9 import (
    PHQ9_MAX_RESPONSE,
    PHQ9_MAX_SCORE,
    PHQ9_QUESTION_COUNT,
    PHQ9_RESPONSES,
    default_responses,
    phq9_items,
    phq9_total,
)
from .registry import Condition, StepSchema, StepSchemaRegistry, WizardStep
from .wizard import WizardDefinition


class IntakeDemographicsSchema(StepSchema):
    residentName = required_text("Resident name is required", min_length=2)
    ssn = text(validate=validate.Length(max=4, error="Only the last 4 digits of the SSN"))
    dateOfBirth = required_date("Date of birth is required")
    admissionDate = date()
    sex = text()
    sexualOrientation = text()
    ethnicity = text()
    language = text()
    religion = required_text("Religion is required")


class IntakeContactSchema(StepSchema):
    patientAddress = text()
    patientPhone = text()
    patientEmail = text(validate=optional_email)
    contactPreference = text()
    emergencyContactName = text()
    emergencyContactRelationship = text()
    emergencyContactPhone = text()
    emergencyContactAddress = text()
    primaryCarePhysician = text()
    primaryCarePhysicianPhone = text()
    caseManagerName = text()
    caseManagerPhone = text()


class IntakeInsuranceSchema(StepSchema):
    insuranceProvider = text()
    policyNumber = text()
    groupNumber = text()
    ahcccsHealthPlan = text()
    hasDNR = flag()
    hasAdvancedDirective = flag()
    hasWill = flag()
    poaLegalGuardian = text()


class IntakeReferralSchema(StepSchema):
    referralSource = text()
    evaluatorName = text()
    evaluatorCredentials = text()
    reasonsForReferral = text()
    residentNeeds = text()
    residentExpectedLOS = text()
    teamExpectedLOS = text()
    strengthsAndLimitations = text()
    familyInvolved = text()


class IntakeSymptomsSchema(StepSchema):
    reasonForServices = text()
    currentBehavioralSymptoms = text()
    copingWithSymptoms = text()
    symptomsLimitations = text()
    immediateUrgentNeeds = text()
    signsOfImprovement = text()
    assistanceExpectations = text()
    involvedInTreatment = text()


class IntakeMedicalSchema(StepSchema):
    allergies = text()
    medications = rows('IntakeMedicationRow', {
        'name': required_text("Medication name is required"),
        'dosage': text(),
        'frequency': text(),
        'route': text(),
        'prescriber': text(),
        'purpose': text(),
        'startDate': text(),
    })
    historyNonCompliance = flag()
    potentialViolence = flag()
    medicalUrgency = text()
    personalMedicalHX = text()
    familyMedicalHX = text()
    medicalConditions = checkboxes(
        'IntakeMedicalConditions',
        'diabetes', 'heartDisease', 'hypertension', 'seizures', 'asthma', 'cancer',
        'hepatitis', 'hiv', 'thyroid', 'kidney', 'liver',
        other=text(),
    )
    height = text()
    weight = text()
    bmi = text()


class IntakePsychiatricSchema(StepSchema):
    isCOT = flag()
    personalPsychHX = text()
    familyPsychHX = text()
    treatmentPreferences = text()
    psychMedicationEfficacy = text()


class IntakeRiskSchema(StepSchema):
    """Danger to self and danger to others"""

    conditional_requirements = {
        'suicideIdeationDetails': Condition(
            'currentSuicideIdeation', True, "Please describe the current suicidal ideation"
        ),
        'homicidalIdeationDetails': Condition(
            'homicidalIdeation', True, "Please describe the homicidal ideation"
        ),
    }

    suicideHistory = text()
    suicideAttemptDetails = text()
    currentSuicideIdeation = flag()
    suicideIdeationDetails = text()
    mostRecentSuicideIdeation = text()
    historySelfHarm = flag()
    selfHarmDetails = text()
    dtsRiskFactors = checkboxes(
        'DtsRiskFactors',
        'accessToMeans', 'recentLoss', 'socialIsolation', 'substanceUse',
        'previousAttempts', 'mentalHealthDiagnosis', 'chronicPain', 'hopelessness',
        other=text(),
    )
    dtsProtectiveFactors = checkboxes(
        'DtsProtectiveFactors',
        'familySupport', 'socialConnections', 'engagedInTreatment', 'spirituality',
        'reasonsForLiving', 'copingSkills',
        other=text(),
    )
    historyHarmingOthers = flag()
    harmingOthersDetails = text()
    homicidalIdeation = flag()
    homicidalIdeationDetails = text()
    dtoRiskFactors = checkboxes(
        'DtoRiskFactors',
        'accessToWeapons', 'historyOfViolence', 'paranoia', 'substanceUse',
        'identifiedTarget', 'stressors',
        other=text(),
    )
    dutyToWarnCompleted = flag()
    dutyToWarnDetails = text()
    previousHospitalizations = text()
    hospitalizationDetails = text()


class IntakeDevelopmentalSchema(StepSchema):
    inUteroExposure = flag()
    inUteroExposureDetails = text()
    developmentalMilestones = text()
    developmentalDetails = text()
    speechDifficulties = flag()
    speechDetails = text()
    visualImpairment = flag()
    visualDetails = text()
    hearingImpairment = flag()
    hearingDetails = text()
    motorSkillsImpairment = flag()
    motorSkillsDetails = text()
    cognitiveImpairment = flag()
    cognitiveDetails = text()
    socialSkillsDeficits = flag()
    socialSkillsDetails = text()
    immunizationStatus = text()


class IntakeSkillsSchema(StepSchema):
    hygieneSkills = group('HygieneSkills', {
        key: text() for key in ('bathing', 'grooming', 'dressing', 'toileting', 'oralCare')
    })
    skillsContinuation = group('SkillsContinuation', {
        key: text() for key in (
            'mealPrep', 'housekeeping', 'laundry', 'money', 'transportation',
            'communication', 'medication',
        )
    })


class IntakePhq9Schema(StepSchema):
    phq9Responses = fields.List(
        fields.Integer(validate=validate.Range(min=0, max=PHQ9_MAX_RESPONSE)),
        allow_none=True,
        validate=validate.Length(
            equal=PHQ9_QUESTION_COUNT, error=f"Answer all {PHQ9_QUESTION_COUNT} PHQ-9 questions"
        ),
        metadata={'questions': phq9_items(), 'choices': list(PHQ9_RESPONSES)},
    )
    phq9TotalScore = fields.Integer(allow_none=True, validate=validate.Range(min=0, max=PHQ9_MAX_SCORE))


class IntakeTreatmentSchema(StepSchema):
    treatmentObjectives = text()
    dischargePlanObjectives = text()
    supportSystem = text()
    communityResources = text()


class IntakeSocialEducationSchema(StepSchema):
    childhoodDescription = text()
    abuseHistory = text()
    familyMentalHealthHistory = text()
    relationshipStatus = text()
    relationshipSatisfaction = text()
    friendsDescription = text()
    highestEducation = text()
    specialEducation = flag()
    specialEducationDetails = text()
    plan504 = flag()
    iep = flag()
    educationDetails = text()
    currentlyEmployed = flag()
    employmentDetails = text()
    workVolunteerHistory = text()
    employmentBarriers = text()


class IntakeLegalSubstanceSchema(StepSchema):
    conditional_requirements = {
        'courtOrderedDetails': Condition(
            'courtOrderedTreatment', True, "Please describe the court ordered treatment"
        ),
    }

    criminalLegalHistory = text()
    courtOrderedTreatment = flag()
    courtOrderedDetails = text()
    otherLegalIssues = text()
    substanceHistory = text()
    substanceUseTable = rows('SubstanceUseTableRow', {
        key: text() for key in ('substance', 'firstUse', 'lastUse', 'pattern', 'route')
    })
    drugOfChoice = text()
    longestSobriety = text()
    substanceTreatmentHistory = text()
    nicotineUse = flag()
    nicotineDetails = text()
    substanceImpact = text()
    historyOfAbuse = text()


class IntakeLivingSchema(StepSchema):
    livingArrangements = text()
    sourceOfFinances = text()
    transportationMethod = text()
    adlChecklist = group('AdlChecklist', {
        key: text() for key in (
            'eating', 'bathing', 'dressing', 'toileting', 'transferring', 'continence',
        )
    })
    preferredActivities = text()
    significantOthers = text()
    supportLevel = text()
    typicalDay = text()
    strengthsAbilitiesInterests = text()


OBSERVATION_FIELDS = (
    'appearanceAge', 'appearanceHeight', 'appearanceWeight', 'appearanceAttire',
    'appearanceGrooming', 'appearanceDescription',
    'demeanorMood', 'demeanorAffect', 'demeanorEyeContact', 'demeanorCooperation',
    'demeanorDescription',
    'speechArticulation', 'speechTone', 'speechRate', 'speechLatency', 'speechDescription',
    'motorGait', 'motorPosture', 'motorActivity', 'motorMannerisms', 'motorDescription',
    'cognitionThoughtContent', 'cognitionThoughtProcess', 'cognitionDelusions',
    'cognitionPerception', 'cognitionJudgment', 'cognitionImpulseControl',
    'cognitionInsight', 'cognitionDescription',
    'estimatedIntelligence',
)

# Behavioral observations are all free text
IntakeObservationsSchema = StepSchema.from_dict(
    {name: text() for name in OBSERVATION_FIELDS}, name='IntakeObservationsSchema'
)


SIGNATURE_FIELDS = (
    'clientSignature', 'clientSignatureDate',
    'assessorSignature', 'assessorSignatureDate',
    'clinicalOversightSignature', 'clinicalOversightSignatureDate',
)


class IntakeWellnessSchema(StepSchema):
    healthNeeds = text()
    nutritionalNeeds = text()
    spiritualNeeds = text()
    culturalNeeds = text()
    educationHistory = text()
    vocationalHistory = text()
    crisisInterventionPlan = text()
    feedbackFrequency = text()
    dischargePlanning = text()
    diagnosis = text()
    treatmentRecommendation = text()
    signatures = group('Signatures', {key: text() for key in SIGNATURE_FIELDS})


class IntakeSubmissionSchema(StepSchema):
    """
    Rules checked only when the intake is submitted

    The client and the assessor must have signed, and a PHQ-9 total sent
    along with the responses must match them.
    """

    signatures = group(
        'SubmittedSignatures',
        dict(
            {key: text() for key in SIGNATURE_FIELDS},
            clientSignature=required_text("Client signature is required"),
            assessorSignature=required_text("Assessor signature is required"),
        ),
        required=True,
        allow_none=False,
        error_messages={'required': "Signatures are required", 'null': "Signatures are required"},
    )

    @validates_schema(skip_on_field_errors=False)
    def check_phq9_total(self, data, **kwargs):
        responses = data.get('phq9Responses')
        total = data.get('phq9TotalScore')
        if not isinstance(responses, list) or total is None:
            return
        try:
            expected = phq9_total(responses)
        except ValueError:
            # bad responses are reported on phq9Responses itself
            return
        if total != expected:
            raise ValidationError(
                "PHQ-9 total score does not match the responses", field_name='phq9TotalScore'
            )


INTAKE_STEPS = (
    WizardStep("Demographics", IntakeDemographicsSchema),
    WizardStep("Contact Info", IntakeContactSchema, "Contact and emergency information"),
    WizardStep("Insurance", IntakeInsuranceSchema, "Insurance and directives"),
    WizardStep("Referral", IntakeReferralSchema, "Referral and needs"),
    WizardStep("Symptoms", IntakeSymptomsSchema, "Behavioral health symptoms"),
    WizardStep("Medical", IntakeMedicalSchema, "Medical information"),
    WizardStep("Psychiatric", IntakePsychiatricSchema, "Psychiatric presentation"),
    WizardStep("Risk", IntakeRiskSchema, "Risk assessment"),
    WizardStep("Developmental", IntakeDevelopmentalSchema, "Developmental history"),
    WizardStep("Skills", IntakeSkillsSchema, "Skills assessment"),
    WizardStep("PHQ-9", IntakePhq9Schema, "PHQ-9 depression screening"),
    WizardStep("Treatment", IntakeTreatmentSchema, "Treatment planning"),
    WizardStep("Social/Education", IntakeSocialEducationSchema, "Social and education history"),
    WizardStep("Legal/Substance", IntakeLegalSubstanceSchema, "Legal and substance history"),
    WizardStep("Living/ADLs", IntakeLivingSchema, "Living situation and activities of daily living"),
    WizardStep("Observations", IntakeObservationsSchema, "Behavioral observations"),
    WizardStep("Wellness", IntakeWellnessSchema, "Wellness, diagnosis and final review"),
)

INTAKE_REGISTRY = StepSchemaRegistry('Intake', INTAKE_STEPS, IntakeSubmissionSchema)


def intake_defaults():
    """Initial form state of a blank intake"""
    today = datetime.date.today().isoformat()
    defaults = {
        # Demographics
        'residentName': '',
        'ssn': '',
        'dateOfBirth': '',
        'admissionDate': '',
        'sex': '',
        'sexualOrientation': '',
        'ethnicity': 'Native American',
        'language': 'English',
        'religion': '',

        # Contact and emergency
        'patientAddress': '',
        'patientPhone': '',
        'patientEmail': '',
        'contactPreference': '',
        'emergencyContactName': '',
        'emergencyContactRelationship': '',
        'emergencyContactPhone': '',
        'emergencyContactAddress': '',
        'primaryCarePhysician': '',
        'primaryCarePhysicianPhone': '',
        'caseManagerName': '',
        'caseManagerPhone': '',

        # Insurance
        'insuranceProvider': '',
        'policyNumber': '',
        'groupNumber': '',
        'ahcccsHealthPlan': '',
        'hasDNR': False,
        'hasAdvancedDirective': False,
        'hasWill': False,
        'poaLegalGuardian': '',

        # Referral
        'referralSource': '',
        'evaluatorName': '',
        'evaluatorCredentials': '',
        'reasonsForReferral': '',
        'residentNeeds': '',
        'residentExpectedLOS': '',
        'teamExpectedLOS': '',
        'strengthsAndLimitations': '',
        'familyInvolved': '',

        # Behavioral symptoms
        'reasonForServices': '',
        'currentBehavioralSymptoms': '',
        'copingWithSymptoms': '',
        'symptomsLimitations': '',
        'immediateUrgentNeeds': '',
        'signsOfImprovement': '',
        'assistanceExpectations': '',
        'involvedInTreatment': '',

        # Medical
        'allergies': '',
        'medications': [],
        'historyNonCompliance': False,
        'potentialViolence': False,
        'medicalUrgency': '',
        'personalMedicalHX': '',
        'familyMedicalHX': '',
        'medicalConditions': {},
        'height': '',
        'weight': '',
        'bmi': '',

        # Psychiatric
        'isCOT': False,
        'personalPsychHX': '',
        'familyPsychHX': '',
        'treatmentPreferences': '',
        'psychMedicationEfficacy': '',

        # Risk
        'suicideHistory': '',
        'suicideAttemptDetails': '',
        'currentSuicideIdeation': False,
        'suicideIdeationDetails': '',
        'mostRecentSuicideIdeation': '',
        'historySelfHarm': False,
        'selfHarmDetails': '',
        'dtsRiskFactors': {},
        'dtsProtectiveFactors': {},
        'historyHarmingOthers': False,
        'harmingOthersDetails': '',
        'homicidalIdeation': False,
        'homicidalIdeationDetails': '',
        'dtoRiskFactors': {},
        'dutyToWarnCompleted': False,
        'dutyToWarnDetails': '',
        'previousHospitalizations': '',
        'hospitalizationDetails': '',

        # Developmental
        'inUteroExposure': False,
        'inUteroExposureDetails': '',
        'developmentalMilestones': '',
        'developmentalDetails': '',
        'speechDifficulties': False,
        'speechDetails': '',
        'visualImpairment': False,
        'visualDetails': '',
        'hearingImpairment': False,
        'hearingDetails': '',
        'motorSkillsImpairment': False,
        'motorSkillsDetails': '',
        'cognitiveImpairment': False,
        'cognitiveDetails': '',
        'socialSkillsDeficits': False,
        'socialSkillsDetails': '',
        'immunizationStatus': '',

        # Skills
        'hygieneSkills': dict.fromkeys(('bathing', 'grooming', 'dressing', 'toileting', 'oralCare'), ''),
        'skillsContinuation': dict.fromkeys(
            ('mealPrep', 'housekeeping', 'laundry', 'money', 'transportation', 'communication', 'medication'),
            '',
        ),

        # PHQ-9
        'phq9Responses': default_responses(),
        'phq9TotalScore': 0,

        # Treatment
        'treatmentObjectives': '',
        'dischargePlanObjectives': '',
        'supportSystem': '',
        'communityResources': '',

        # Social and education
        'childhoodDescription': '',
        'abuseHistory': '',
        'familyMentalHealthHistory': '',
        'relationshipStatus': '',
        'relationshipSatisfaction': '',
        'friendsDescription': '',
        'highestEducation': '',
        'specialEducation': False,
        'specialEducationDetails': '',
        'plan504': False,
        'iep': False,
        'educationDetails': '',
        'currentlyEmployed': False,
        'employmentDetails': '',
        'workVolunteerHistory': '',
        'employmentBarriers': '',

        # Legal and substance
        'criminalLegalHistory': '',
        'courtOrderedTreatment': False,
        'courtOrderedDetails': '',
        'otherLegalIssues': '',
        'substanceHistory': '',
        'substanceUseTable': [],
        'drugOfChoice': '',
        'longestSobriety': '',
        'substanceTreatmentHistory': '',
        'nicotineUse': False,
        'nicotineDetails': '',
        'substanceImpact': '',
        'historyOfAbuse': '',

        # Living situation and ADLs
        'livingArrangements': '',
        'sourceOfFinances': '',
        'transportationMethod': '',
        'adlChecklist': dict.fromkeys(
            ('eating', 'bathing', 'dressing', 'toileting', 'transferring', 'continence'), ''
        ),
        'preferredActivities': '',
        'significantOthers': '',
        'supportLevel': '',
        'typicalDay': '',
        'strengthsAbilitiesInterests': '',

        # Wellness and final review
        'healthNeeds': '',
        'nutritionalNeeds': '',
        'spiritualNeeds': '',
        'culturalNeeds': '',
        'educationHistory': '',
        'vocationalHistory': '',
        'crisisInterventionPlan': '',
        'feedbackFrequency': '',
        'dischargePlanning': '',
        'diagnosis': '',
        'treatmentRecommendation': '',
        'signatures': {
            'clientSignature': '',
            'clientSignatureDate': today,
            'assessorSignature': '',
            'assessorSignatureDate': today,
            'clinicalOversightSignature': '',
            'clinicalOversightSignatureDate': '',
        },
    }
    defaults.update(dict.fromkeys(OBSERVATION_FIELDS, ''))
    return defaults


INTAKE_WIZARD = WizardDefinition(
    form_type='intake',
    title="Resident Intake",
    registry=INTAKE_REGISTRY,
    defaults=intake_defaults,
    collection='intakes',
    record_key='intake',
    subject_field='residentName',
    date_fields=('dateOfBirth', 'admissionDate'),
    submit_failure_message="Failed to submit intake",
    submitted_title="Intake Submitted",
    submitted_message="The intake assessment has been submitted for BHP review.",
)
