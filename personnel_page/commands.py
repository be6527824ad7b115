import json

import click
from flask.cli import AppGroup

from . import app, mongo
from .common.mongo import collection_status
from .common.mongo import init_collections as init_collections_func
from .custom_fields.repository import CustomFieldRepository, CustomFieldValueError
from .personnel.repository import PersonnelRepository
from .user.models import User, UserExistsError

user_group = AppGroup("user", help="Manage users.")
app.cli.add_command(user_group)


@user_group.command("add", help="Add a user.")
@click.option("-u", "--username", required=True)
@click.option("-e", "--email", required=True)
@click.option("-r", "--role", multiple=True, type=click.Choice(User.ROLES))
def add_user(username, email, role):  # pragma: no cover
    try:
        User.create(username, email, list(role))
    except UserExistsError:
        click.echo("User already exists.")
        return
    click.echo(f"User added username={username}")


@user_group.command("del", help="Delete a user.")
@click.option("-u", "--username", required=True)
def del_user(username):  # pragma: no cover
    user = User.get(username)
    if not user:
        click.echo("User does not exist.")
        return
    if click.confirm(f"Do you really want to delete user {username}?"):
        user.delete()
        click.echo("User deleted")


@user_group.command("list", help="List users.")
def list_users():  # pragma: no cover
    for doc in mongo.db.users.find({}, {"_id": 0}):
        print(doc)


@app.cli.command("init-collections", help="Create the collections and their indexes.")
def init_collections():  # pragma: no cover
    created, existed = init_collections_func()
    if created:
        click.echo(f"Created collections: {', '.join(created)}")
    if existed:
        click.echo(f"Collections already present: {', '.join(existed)}")


@app.cli.command("collection-status", help="Show indexes, options and size of the collections.")
def status():  # pragma: no cover
    for name in (app.config["PERSONNEL_COLLECTION"], "saved_filters", "custom_fields", "users"):
        collection_status(mongo.db[name])
        print()


custom_fields_group = AppGroup("custom-fields", help="Inspect custom field definitions.")
app.cli.add_command(custom_fields_group)


@custom_fields_group.command("list", help="List custom field definitions.")
def list_custom_fields():  # pragma: no cover
    for definition in CustomFieldRepository(mongo.db).list_all():
        options = f" [{', '.join(definition.options)}]" if definition.options else ""
        required = " (required)" if definition.required else ""
        click.echo(f"{definition.token}: {definition.field_type.value}{options}{required} - {definition.label}")


personnel_group = AppGroup("personnel", help="Manage personnel records.")
app.cli.add_command(personnel_group)


@personnel_group.command("import", help="Import records from a JSON file holding a list of objects.")
@click.argument("file", type=click.File("r", encoding="utf-8"))
def import_personnel(file):  # pragma: no cover
    records = json.load(file)
    if not isinstance(records, list):
        raise click.ClickException("Expected a JSON list of records.")
    definitions = CustomFieldRepository(mongo.db).list_all()
    repository = PersonnelRepository(mongo.db, app.config["PERSONNEL_COLLECTION"])
    imported = 0
    for i, record in enumerate(records):
        try:
            repository.insert(record, definitions)
            imported += 1
        except (CustomFieldValueError, ValueError) as e:
            click.echo(f"Record {i} skipped: {e}", err=True)
    click.echo(f"Imported {imported} of {len(records)} records.")
