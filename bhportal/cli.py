import click
from flask.cli import with_appcontext

from .exceptions import WizardError
from .forms import WIZARDS, get_definition
from .models import RecordStatus, db
from .records import RecordService

FORM_TYPES = click.Choice(sorted(WIZARDS))


def echo_header(title):
    """
    Print a formatted header with title and underline.

    Args:
        title: Title text to display
    """
    click.echo(click.style(title, fg="green"))
    click.echo(click.style("-" * len(title), fg="green"))


@click.command("init-db")
@with_appcontext
def init_db():
    """Create the assessment and intake tables."""
    echo_header("Creating database tables")
    db.create_all()
    click.echo(click.style("Database tables created", fg="green"))


@click.command()
@click.argument("form_type", type=FORM_TYPES)
def steps(form_type):
    """
    List the steps of a wizard and the fields shown on each.

    Args:
        form_type: asam or intake
    """
    definition = get_definition(form_type)
    echo_header(f"{definition.title} ({definition.total_steps} steps)")
    for index, step in enumerate(definition.registry.steps, start=1):
        click.echo(f"{index:>2}. {step.title}")
        click.echo(f"    {', '.join(step.fields)}")


@click.command()
@click.argument("form_type", type=FORM_TYPES)
@with_appcontext
def drafts(form_type):
    """
    List saved drafts of a form type.

    Args:
        form_type: asam or intake
    """
    definition = get_definition(form_type)
    echo_header(f"{definition.title} drafts")
    try:
        records = RecordService(definition).list(RecordStatus.DRAFT.value)
    except WizardError as e:
        click.echo(click.style(f"Error listing drafts: {e.message}", fg="red"))
        raise click.Abort()

    if not records:
        click.echo("No drafts")
        return
    for record in records:
        click.echo(
            f"{record.id}  step {record.current_step}/{definition.total_steps}  "
            f"{record.subject_name}  (updated {record.changed_on:%Y-%m-%d %H:%M})"
        )


@click.group()
def bhportal():
    """Behavioral health portal commands."""
    pass


bhportal.add_command(init_db)
bhportal.add_command(steps)
bhportal.add_command(drafts)
