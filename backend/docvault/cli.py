# Overview: Flask CLI command groups for counters, records, generated documents and artifact files.

# backend/docvault/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to docvault (PowerShell: $env:FLASK_APP="docvault").
# - Use: python -m flask <group> <command> [options]
#
# Counters:
# - python -m flask counters list
#   Show every counter and its last issued value.
# - python -m flask counters next PO
#   Issue the next value (consumes it) and print the formatted number.
# - python -m flask counters reset PO --yes
#   Low-level reset of one counter. Prefer `records reset`, which also clears the collection.
#
# Records:
# - python -m flask records list purchases --search acme --status pending --page 1 --limit 20
# - python -m flask records reset materials --yes
#   Delete every record and artifact of a domain and restart its numbering at 1.
#
# Documents:
# - python -m flask documents generate purchases PO-00007 --attach drawing.pdf
#   Render, merge and stamp the record's PDF.
#
# Files:
# - python -m flask files list --type purchases --search acme
# - python -m flask files orphans
# - python -m flask files broken
# - python -m flask files delete PO00007_ACME_01-02-2026.pdf
# - python -m flask files cleanup-orphans --yes

import click
from flask.cli import with_appcontext

from .domains import DOMAINS
from .extensions import vault
from .services import document_service
from .services.collection_service import QueryOptions
from .services.file_registry_service import FileFilters
from .validation import DocVaultError


def _fail(exc: DocVaultError):
    raise click.ClickException(str(exc))


@click.group('counters')
def counters_group():
    """Document number counters."""


@counters_group.command('list')
@with_appcontext
def list_counters():
    """List counters with their last issued value."""
    counters = vault.sequences.snapshot()
    if not counters:
        click.echo("No counters issued yet.")
        return
    for name in sorted(counters):
        value = counters[name]
        click.echo(f"{name:<6} {value:>6}  last={vault.sequences.format(name, value) if value else '-'}")


@counters_group.command('next')
@click.argument('name')
@with_appcontext
def next_counter(name):
    """Issue the next value of a counter."""
    try:
        value = vault.sequences.next_value(name)
    except DocVaultError as exc:
        _fail(exc)
    click.echo(vault.sequences.format(name, value))


@counters_group.command('reset')
@click.argument('name')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_counter(name, yes):
    """
    Reset one counter to 0.

    Does not touch the owning collection; `records reset` does both.
    """
    if not yes:
        click.confirm(f"WARN Counter {name} will restart at 1 while its records remain. Continue?", abort=True)
    try:
        previous = vault.sequences.reset(name)
    except DocVaultError as exc:
        _fail(exc)
    click.echo(f"PASS Counter {name} reset (was {previous}).")


@click.group('records')
def records_group():
    """Record collections."""


@records_group.command('list')
@click.argument('domain', type=click.Choice(sorted(DOMAINS)))
@click.option('--search', help='Substring match on number and search fields')
@click.option('--status', help='Exact status filter')
@click.option('--page', type=int, default=1, show_default=True)
@click.option('--limit', type=int, help='Page size (defaults to DOCVAULT_PAGE_LIMIT_DEFAULT)')
@with_appcontext
def list_records(domain, search, status, page, limit):
    """List records of a domain, newest first."""
    options = QueryOptions(
        search=search,
        filters={"status": status} if status else {},
        page=page,
        limit=limit or vault.page_limit_default,
    )
    result = document_service.list_records(domain, options=options)
    for record in result.items:
        spec = DOMAINS[domain]
        click.echo(
            f"{record.get('number', '?'):<12} {record.get('status', ''):<10} "
            f"{record.get('date', ''):<10} {record.get(spec.counterparty_field) or '-'}"
        )
    click.echo(f"Page {result.page}/{result.total_pages or 1} ({result.total} records)")


@records_group.command('reset')
@click.argument('domain', type=click.Choice(sorted(DOMAINS)))
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_records(domain, yes):
    """
    DANGER: Delete every record and artifact of DOMAIN and restart numbering.
    """
    if not yes:
        click.confirm(f"WARN This will DELETE all {domain} records and files. Are you sure?", abort=True)
    try:
        result = document_service.reset_domain(domain)
    except DocVaultError as exc:
        _fail(exc)
    click.echo(
        f"PASS Removed {result['deletedRecords']} records and {result['deletedFiles']} files; "
        f"next number is {result['nextNumber']}."
    )


@click.group('documents')
def documents_group():
    """Generated PDF documents."""


@documents_group.command('generate')
@click.argument('domain', type=click.Choice(sorted(DOMAINS)))
@click.argument('record_id')
@click.option('--attach', type=click.Path(exists=True, dir_okay=False), help='PDF to merge after the generated pages')
@click.option('--issue-date', help='Date printed in the header (YYYY-MM-DD, defaults to today)')
@with_appcontext
def generate_document(domain, record_id, attach, issue_date):
    """Render, merge and stamp the PDF of one record."""
    try:
        result = document_service.generate_artifact(domain, record_id, attach, issue_date=issue_date)
    except DocVaultError as exc:
        _fail(exc)
    pages = result["pages"]
    click.echo(
        f"PASS {result['filename']} ({result['language']}, {pages['total']} pages: "
        f"{pages['generated']} generated + {pages['attachments']} attached)"
    )


@click.group('files')
def files_group():
    """Artifact files on disk and their owning records."""


def _echo_entries(entries):
    for entry in entries:
        click.echo(f"{entry.status:<9} {entry.type:<15} {entry.formatted_size:>10}  {entry.name}")


@files_group.command('list')
@click.option('--type', 'type_', help='Only files of this type (domain key or extra directory)')
@click.option('--search', help='Substring match on name, number, counterparty or creator')
@click.option('--page', type=int, default=1, show_default=True)
@click.option('--limit', type=int, default=50, show_default=True)
@with_appcontext
def list_files(type_, search, page, limit):
    """List files across every known directory."""
    try:
        result = vault.registry.list(FileFilters(type=type_, search=search, page=page, limit=limit))
    except DocVaultError as exc:
        _fail(exc)
    for item in result.items:
        click.echo(f"{item['status']:<9} {item['type']:<15} {item['formattedSize']:>10}  {item['name']}")
    click.echo(f"Page {result.page}/{result.total_pages or 1} ({result.total} files)")


@files_group.command('orphans')
@with_appcontext
def list_orphans():
    """Files no record references."""
    _echo_entries(vault.registry.orphans())


@files_group.command('broken')
@with_appcontext
def list_broken():
    """Records whose artifact file is missing."""
    _echo_entries(vault.registry.broken())


@files_group.command('delete')
@click.argument('filename')
@click.option('--type', 'type_', help='Limit the search to one domain')
@with_appcontext
def delete_file(filename, type_):
    """Remove FILENAME and the reference to it on its owning record."""
    try:
        result = vault.registry.delete_by_filename(filename, type_)
    except DocVaultError as exc:
        _fail(exc)
    if not result.ok:
        click.echo(f"WARN {result.message}: {filename}")
        return
    click.echo(f"PASS {result.message}: {filename} ({result.type} {result.record_id})")


@files_group.command('cleanup-orphans')
@click.option('--yes', is_flag=True, help='Delete without asking')
@with_appcontext
def cleanup_orphans(yes):
    """Delete orphaned files after confirmation."""
    preview = vault.registry.cleanup_orphans(confirm=False)
    if not preview["candidates"]:
        click.echo("No orphaned files.")
        return
    for item in preview["candidates"]:
        click.echo(f"orphan    {item['relativePath']}")
    if not yes:
        click.confirm(f"WARN Delete {len(preview['candidates'])} orphaned files?", abort=True)
    result = vault.registry.cleanup_orphans(confirm=True)
    click.echo(f"PASS Deleted {len(result['deleted'])} files.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(counters_group)
    app.cli.add_command(records_group)
    app.cli.add_command(documents_group)
    app.cli.add_command(files_group)
