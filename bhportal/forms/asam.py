"""
ASAM substance use assessment

Eight steps: demographics, the six ASAM dimensions (each closing with a 0-4
severity rating) and a summary with the level of care determination.
"""

import datetime

from marshmallow import ValidationError, fields, validate, validates_schema

from .fields import (
    checkboxes,
    date,
    group,
    flag,
    required_date,
    required_text,
    rows,
    severity_rating,
    text,
)
from .registry import Condition, StepSchema, StepSchemaRegistry, WizardStep
from .wizard import WizardDefinition


class AsamDemographicsSchema(StepSchema):
    patientName = required_text("Patient name is required", min_length=2)
    assessmentDate = date()
    admissionDate = date()
    phoneNumber = text()
    okayToLeaveVoicemail = flag()
    patientAddress = text()
    dateOfBirth = required_date("Date of birth is required")
    age = fields.Integer(allow_none=True, validate=validate.Range(min=0, error="Age cannot be negative"))
    gender = text()
    raceEthnicity = text()
    preferredLanguage = text()
    ahcccsId = text()
    otherInsuranceId = text()
    insuranceType = text()
    insurancePlan = text()
    livingArrangement = text()
    referredBy = text()
    reasonForTreatment = text()
    currentSymptoms = text()


class AsamSubstanceUseSchema(StepSchema):
    """Dimension 1: acute intoxication and withdrawal potential"""

    substanceUseHistory = rows('SubstanceUseRow', {
        'substance': required_text("Substance is required", min_length=0),
        'recentlyUsed': flag(),
        'priorUse': flag(),
        'route': text(),
        'frequency': text(),
        'ageFirstUse': text(),
        'lastUse': text(),
        'amount': text(),
    })
    usingMoreThanIntended = flag()
    usingMoreDetails = text()
    physicallyIllWhenStopping = flag()
    physicallyIllDetails = text()
    currentWithdrawalSymptoms = flag()
    withdrawalSymptomsDetails = text()
    historyOfSeriousWithdrawal = flag()
    seriousWithdrawalDetails = text()
    toleranceIncreased = flag()
    toleranceDetails = text()
    recentUseChanges = flag()
    recentUseChangesDetails = text()
    familySubstanceHistory = text()
    dimension1Severity = severity_rating()
    dimension1Comments = text()


class AsamBiomedicalSchema(StepSchema):
    """Dimension 2: biomedical conditions and complications"""

    medicalProviders = rows('MedicalProviderRow', {
        'name': required_text("Provider name is required", min_length=0),
        'specialty': text(),
        'contact': text(),
    })
    medicalConditions = checkboxes(
        'AsamMedicalConditions',
        'heartProblems', 'seizureNeurological', 'muscleJointProblems', 'diabetes',
        'highBloodPressure', 'thyroidProblems', 'visionProblems', 'sleepProblems',
        'highCholesterol', 'kidneyProblems', 'hearingProblems', 'chronicPain',
        'bloodDisorder', 'liverProblems', 'dentalProblems', 'pregnant',
        'stomachIntestinalProblems', 'asthmaLungProblems',
        std=text(), cancer=text(), infections=text(), allergies=text(), other=text(),
    )
    conditionsInterfere = flag()
    conditionsInterfereDetails = text()
    priorHospitalizations = text()
    lifeThreatening = flag()
    medicalMedications = rows('MedicalMedicationRow', {
        'medication': required_text("Medication is required", min_length=0),
        'dose': text(),
        'reason': text(),
        'effectiveness': text(),
    })
    dimension2Severity = severity_rating()
    dimension2Comments = text()


class AsamEmotionalSchema(StepSchema):
    """Dimension 3: emotional, behavioral or cognitive conditions"""

    conditional_requirements = {
        'suicidalThoughtsDetails': Condition(
            'suicidalThoughts', True, "Please describe the suicidal thoughts"
        ),
        'harmingOthersDetails': Condition(
            'thoughtsOfHarmingOthers', True, "Please describe the thoughts of harming others"
        ),
    }

    moodSymptoms = checkboxes(
        'MoodSymptoms',
        'depression', 'lossOfPleasure', 'hopelessness', 'irritability',
        'impulsivity', 'pressuredSpeech', 'grandiosity', 'racingThoughts',
    )
    anxietySymptoms = checkboxes(
        'AnxietySymptoms', 'anxiety', 'obsessiveThoughts', 'compulsiveBehaviors', 'flashbacks',
    )
    psychosisSymptoms = checkboxes(
        'PsychosisSymptoms', 'paranoia', delusions=text(), hallucinations=text(),
    )
    otherSymptoms = checkboxes(
        'OtherSymptoms', 'sleepProblems', 'memoryConcentration', 'gambling', 'riskySexBehaviors',
    )
    suicidalThoughts = flag()
    suicidalThoughtsDetails = text()
    thoughtsOfHarmingOthers = flag()
    harmingOthersDetails = text()
    abuseHistory = text()
    traumaticEvents = text()
    mentalIllnessDiagnosed = flag()
    mentalIllnessDetails = text()
    previousPsychTreatment = flag()
    psychTreatmentDetails = text()
    hallucinationsPresent = flag()
    hallucinationsDetails = text()
    furtherMHAssessmentNeeded = flag()
    furtherMHAssessmentDetails = text()
    psychiatricMedications = rows('PsychiatricMedicationRow', {
        'medication': required_text("Medication is required", min_length=0),
        'dose': text(),
        'reason': text(),
        'effectiveness': text(),
    })
    mentalHealthProviders = rows('MentalHealthProviderRow', {
        'name': required_text("Provider name is required", min_length=0),
        'contact': text(),
    })
    dimension3Severity = severity_rating()
    dimension3Comments = text()


class AsamReadinessSchema(StepSchema):
    """Dimension 4: readiness to change"""

    areasAffectedByUse = checkboxes(
        'AreasAffectedByUse',
        'work', 'mentalHealth', 'physicalHealth', 'finances', 'school', 'relationships',
        'sexualActivity', 'legalMatters', 'everydayTasks', 'selfEsteem', 'hygiene',
        'recreationalActivities',
        other=text(),
    )
    continueUseDespiteEffects = flag()
    continueUseDetails = text()
    previousTreatmentHelp = flag()
    treatmentProviders = rows('TreatmentProviderRow', {
        'name': required_text("Provider name is required", min_length=0),
        'contact': text(),
    })
    recoverySupport = text()
    recoveryBarriers = text()
    treatmentImportanceAlcohol = text()
    treatmentImportanceDrugs = text()
    treatmentImportanceDetails = text()
    dimension4Severity = severity_rating()
    dimension4Comments = text()


class AsamRelapseSchema(StepSchema):
    """Dimension 5: relapse, continued use or continued problem potential"""

    cravingsFrequencyAlcohol = text()
    cravingsFrequencyDrugs = text()
    cravingsDetails = text()
    timeSearchingForSubstances = flag()
    timeSearchingDetails = text()
    relapseWithoutTreatment = flag()
    relapseDetails = text()
    awareOfTriggers = flag()
    triggersList = checkboxes(
        'TriggersList',
        'strongCravings', 'workPressure', 'mentalHealth', 'relationshipProblems',
        'difficultyDealingWithFeelings', 'financialStressors', 'physicalHealth',
        'schoolPressure', 'environment', 'unemployment', 'chronicPain', 'peerPressure',
        other=text(),
    )
    copingWithTriggers = text()
    attemptsToControl = text()
    longestSobriety = text()
    whatHelped = text()
    whatDidntHelp = text()
    dimension5Severity = severity_rating()
    dimension5Comments = text()


class AsamRecoveryEnvironmentSchema(StepSchema):
    """Dimension 6: recovery and living environment"""

    supportiveRelationships = text()
    currentLivingSituation = text()
    othersUsingDrugsInEnvironment = flag()
    othersUsingDetails = text()
    safetyThreats = flag()
    safetyThreatsDetails = text()
    negativeImpactRelationships = flag()
    negativeImpactDetails = text()
    currentlyEmployedOrSchool = flag()
    employmentSchoolDetails = text()
    socialServicesInvolved = flag()
    socialServicesDetails = text()
    probationParoleOfficer = text()
    probationParoleContact = text()
    dimension6Severity = severity_rating()
    dimension6Comments = text()


class AsamSummarySchema(StepSchema):
    """Summary, DSM-5 criteria, level of care and signatures"""

    summaryRationale = group('SummaryRationale', {
        f'dimension{number}Rationale': text() for number in range(1, 7)
    })
    dsm5Criteria = rows('Dsm5CriteriaRow', {
        'substanceName': required_text("Substance is required", min_length=0),
        'criteria': fields.List(fields.Boolean(), allow_none=True),
        'totalCriteria': fields.Integer(allow_none=True, validate=validate.Range(min=0)),
    })
    dsm5Diagnoses = text()
    levelOfCareDetermination = group('LevelOfCareDetermination', {
        'withdrawalManagement': text(),
        'treatmentServices': text(),
        'otp': flag(),
    })
    matInterested = flag()
    matDetails = text()
    recommendedLevelOfCare = text()
    levelOfCareProvided = text()
    discrepancyReason = text()
    discrepancyExplanation = text()
    designatedTreatmentLocation = text()
    designatedProviderName = text()
    counselorName = text()
    counselorSignatureDate = date()
    bhpLphaName = text()
    bhpLphaSignatureDate = date()

    @validates_schema(skip_on_field_errors=False)
    def check_level_of_care_discrepancy(self, data, **kwargs):
        recommended = (data.get('recommendedLevelOfCare') or '').strip()
        provided = (data.get('levelOfCareProvided') or '').strip()
        if recommended and provided and recommended != provided \
                and not (data.get('discrepancyReason') or '').strip():
            raise ValidationError(
                "Please give the reason the level of care provided differs from the recommendation",
                field_name='discrepancyReason',
            )


class AsamSubmissionSchema(StepSchema):
    """Fields that must be filled in before the assessment can be submitted"""

    counselorName = required_text("Counselor name is required")


ASAM_STEPS = (
    WizardStep("Demographics", AsamDemographicsSchema),
    WizardStep("Substance Use", AsamSubstanceUseSchema,
               "Dimension 1: acute intoxication and/or withdrawal potential"),
    WizardStep("Biomedical", AsamBiomedicalSchema,
               "Dimension 2: biomedical conditions and complications"),
    WizardStep("Emotional/Cognitive", AsamEmotionalSchema,
               "Dimension 3: emotional, behavioral or cognitive conditions"),
    WizardStep("Readiness", AsamReadinessSchema, "Dimension 4: readiness to change"),
    WizardStep("Relapse Potential", AsamRelapseSchema,
               "Dimension 5: relapse, continued use or continued problem potential"),
    WizardStep("Recovery Env", AsamRecoveryEnvironmentSchema,
               "Dimension 6: recovery/living environment"),
    WizardStep("Summary", AsamSummarySchema,
               "Summary, DSM-5 criteria, level of care and signatures"),
)

ASAM_REGISTRY = StepSchemaRegistry('Asam', ASAM_STEPS, AsamSubmissionSchema)


def asam_defaults():
    """Initial form state of a blank assessment"""
    today = datetime.date.today().isoformat()
    defaults = {
        # Demographics
        'patientName': '',
        'assessmentDate': today,
        'admissionDate': '',
        'phoneNumber': '',
        'okayToLeaveVoicemail': False,
        'patientAddress': '',
        'dateOfBirth': '',
        'age': None,
        'gender': '',
        'raceEthnicity': '',
        'preferredLanguage': 'English',
        'ahcccsId': '',
        'otherInsuranceId': '',
        'insuranceType': '',
        'insurancePlan': '',
        'livingArrangement': '',
        'referredBy': '',
        'reasonForTreatment': '',
        'currentSymptoms': '',

        # Dimension 1
        'substanceUseHistory': [],
        'usingMoreThanIntended': False,
        'usingMoreDetails': '',
        'physicallyIllWhenStopping': False,
        'physicallyIllDetails': '',
        'currentWithdrawalSymptoms': False,
        'withdrawalSymptomsDetails': '',
        'historyOfSeriousWithdrawal': False,
        'seriousWithdrawalDetails': '',
        'toleranceIncreased': False,
        'toleranceDetails': '',
        'recentUseChanges': False,
        'recentUseChangesDetails': '',
        'familySubstanceHistory': '',

        # Dimension 2
        'medicalProviders': [],
        'medicalConditions': {},
        'conditionsInterfere': False,
        'conditionsInterfereDetails': '',
        'priorHospitalizations': '',
        'lifeThreatening': False,
        'medicalMedications': [],

        # Dimension 3
        'moodSymptoms': {},
        'anxietySymptoms': {},
        'psychosisSymptoms': {},
        'otherSymptoms': {},
        'suicidalThoughts': False,
        'suicidalThoughtsDetails': '',
        'thoughtsOfHarmingOthers': False,
        'harmingOthersDetails': '',
        'abuseHistory': '',
        'traumaticEvents': '',
        'mentalIllnessDiagnosed': False,
        'mentalIllnessDetails': '',
        'previousPsychTreatment': False,
        'psychTreatmentDetails': '',
        'hallucinationsPresent': False,
        'hallucinationsDetails': '',
        'furtherMHAssessmentNeeded': False,
        'furtherMHAssessmentDetails': '',
        'psychiatricMedications': [],
        'mentalHealthProviders': [],

        # Dimension 4
        'areasAffectedByUse': {},
        'continueUseDespiteEffects': False,
        'continueUseDetails': '',
        'previousTreatmentHelp': False,
        'treatmentProviders': [],
        'recoverySupport': '',
        'recoveryBarriers': '',
        'treatmentImportanceAlcohol': '',
        'treatmentImportanceDrugs': '',
        'treatmentImportanceDetails': '',

        # Dimension 5
        'cravingsFrequencyAlcohol': '',
        'cravingsFrequencyDrugs': '',
        'cravingsDetails': '',
        'timeSearchingForSubstances': False,
        'timeSearchingDetails': '',
        'relapseWithoutTreatment': False,
        'relapseDetails': '',
        'awareOfTriggers': False,
        'triggersList': {},
        'copingWithTriggers': '',
        'attemptsToControl': '',
        'longestSobriety': '',
        'whatHelped': '',
        'whatDidntHelp': '',

        # Dimension 6
        'supportiveRelationships': '',
        'currentLivingSituation': '',
        'othersUsingDrugsInEnvironment': False,
        'othersUsingDetails': '',
        'safetyThreats': False,
        'safetyThreatsDetails': '',
        'negativeImpactRelationships': False,
        'negativeImpactDetails': '',
        'currentlyEmployedOrSchool': False,
        'employmentSchoolDetails': '',
        'socialServicesInvolved': False,
        'socialServicesDetails': '',
        'probationParoleOfficer': '',
        'probationParoleContact': '',

        # Summary
        'summaryRationale': {},
        'dsm5Criteria': [],
        'dsm5Diagnoses': '',
        'levelOfCareDetermination': {},
        'matInterested': False,
        'matDetails': '',
        'recommendedLevelOfCare': '',
        'levelOfCareProvided': '',
        'discrepancyReason': '',
        'discrepancyExplanation': '',
        'designatedTreatmentLocation': '',
        'designatedProviderName': '',
        'counselorName': '',
        'counselorSignatureDate': today,
        'bhpLphaName': '',
        'bhpLphaSignatureDate': '',
    }
    for dimension in range(1, 7):
        defaults[f'dimension{dimension}Severity'] = None
        defaults[f'dimension{dimension}Comments'] = ''
    return defaults


ASAM_WIZARD = WizardDefinition(
    form_type='asam',
    title="ASAM Assessment",
    registry=ASAM_REGISTRY,
    defaults=asam_defaults,
    collection='asam',
    record_key='assessment',
    subject_field='patientName',
    date_fields=(
        'dateOfBirth', 'admissionDate', 'assessmentDate', 'counselorSignatureDate', 'bhpLphaSignatureDate',
    ),
    submit_failure_message="Failed to submit assessment",
    submitted_title="ASAM Assessment Submitted",
    submitted_message="The ASAM assessment has been submitted for BHP review.",
)
