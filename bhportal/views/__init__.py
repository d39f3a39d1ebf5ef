from .wizard import AsamWizardView, IntakeWizardView, WizardFormView

WIZARD_VIEWS = (AsamWizardView, IntakeWizardView)


def create_wizard_blueprints():
    return [view_class().blueprint for view_class in WIZARD_VIEWS]
