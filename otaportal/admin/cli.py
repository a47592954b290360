"""OTA Spaces Portal admin CLI.

Operator commands that work directly against the portal database and the
upload bucket: schema bootstrap, seeding, space and membership
administration, the storage reconciliation sweep and development tokens.

Usage:
    otaportal-admin [command] [options]

Examples:
    # Create tables and the initial space with its owner
    otaportal-admin init-db
    otaportal-admin seed --email admin@example.com

    # Manage spaces and members
    otaportal-admin spaces create --name "Acme" --slug acme
    otaportal-admin members add acme dev@example.com --role admin

    # Report (and optionally delete) orphaned objects
    otaportal-admin reconcile --space acme --delete-orphans
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

import click
from pydantic import ValidationError as SchemaValidationError
from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config.constants import RECONCILE_MIN_OBJECT_AGE_SECONDS
from ..database import Base, engine, session as scoped_db_session
from ..logger import get_logger
from ..middleware.auth.jwt import create_jwt_token
from ..models.api.spaces import CreateSpaceRequest
from ..models.iam import Space, SpaceMember, User
from ..operations.aws.s3 import SpaceStorageClient
from ..operations.spaces import SpaceRole, UploadRegistry, reconcile_space
from ..operations.storage.keys import format_file_size

logger = get_logger(__name__)
console = Console()

SEED_SPACE = {
  "name": "Blaupunkt",
  "slug": "blaupunkt",
  "description": "Blaupunkt Android tablet OTA images",
}
ROLE_CHOICE = click.Choice([role.value for role in SpaceRole])


@dataclass
class AdminContext:
  """Resources shared by CLI commands; storage is created on first use."""

  session: Session
  storage_factory: Callable[[], SpaceStorageClient] = SpaceStorageClient
  _storage: Optional[SpaceStorageClient] = field(default=None, repr=False)

  @property
  def storage(self) -> SpaceStorageClient:
    if self._storage is None:
      self._storage = self.storage_factory()
    return self._storage


def _require_space(ctx: AdminContext, slug: str) -> Space:
  space = Space.get_any_by_slug(slug, ctx.session)
  if not space:
    raise click.ClickException(f"Space '{slug}' not found")
  return space


def _require_user(ctx: AdminContext, email: str) -> User:
  user = User.get_by_email(email, ctx.session)
  if not user:
    raise click.ClickException(f"User '{email}' not found")
  return user


@click.group()
@click.pass_context
def cli(ctx):
  """OTA Spaces Portal Admin CLI."""
  if ctx.obj is None:
    ctx.obj = AdminContext(session=scoped_db_session())
    ctx.call_on_close(scoped_db_session.remove)


@cli.command("init-db")
def init_db():
  """Create any missing tables."""
  Base.metadata.create_all(bind=engine)
  console.print("[green]✓[/green] Database tables created")


@cli.command()
@click.option("--email", required=True, help="Email of the initial owner")
@click.option("--name", help="Display name of the initial owner")
@click.pass_obj
def seed(ctx: AdminContext, email, name):
  """Create the initial space and assign an owner. Safe to re-run."""
  user = User.get_by_email(email, ctx.session)
  if user:
    console.print(f"User already exists: {user.email}")
  else:
    user = User.create(email=email, name=name, session=ctx.session)
    console.print(f"[green]✓[/green] Initial user created: {user.email}")

  space = Space.get_any_by_slug(SEED_SPACE["slug"], ctx.session)
  if space:
    console.print(f"Space already exists: {space.name} ({space.slug})")
  else:
    space = Space.create(session=ctx.session, **SEED_SPACE)
    console.print(f"[green]✓[/green] Initial space created: {space.name} ({space.slug})")

  if SpaceMember.get(space.id, user.id, ctx.session):
    console.print("User already assigned to space.")
  else:
    SpaceMember.create(
      space_id=space.id,
      user_id=user.id,
      role=SpaceRole.OWNER.value,
      session=ctx.session,
    )
    console.print("[green]✓[/green] User assigned to space with owner role.")


@cli.group()
def users():
  """Manage portal users."""
  pass


@users.command("create")
@click.option("--email", required=True)
@click.option("--name")
@click.pass_obj
def create_user(ctx: AdminContext, email, name):
  """Create a user."""
  if User.get_by_email(email, ctx.session):
    raise click.ClickException(f"User '{email}' already exists")
  user = User.create(email=email, name=name, session=ctx.session)
  console.print(f"[green]✓[/green] Created user {user.id} ({user.email})")


@cli.group()
def spaces():
  """Manage spaces."""
  pass


@spaces.command("list")
@click.option("--include-inactive", is_flag=True, help="Include deactivated spaces")
@click.pass_obj
def list_spaces(ctx: AdminContext, include_inactive):
  """List spaces with their storage totals."""
  query = ctx.session.query(Space).order_by(Space.name)
  if not include_inactive:
    query = query.filter(Space.is_active.is_(True))
  rows = query.all()

  if not rows:
    console.print("\n[yellow]No spaces found.[/yellow]")
    return

  table = Table(title="Spaces", show_header=True, header_style="bold cyan")
  table.add_column("ID", no_wrap=True)
  table.add_column("Slug", overflow="fold")
  table.add_column("Name", overflow="fold")
  table.add_column("Active")
  table.add_column("Members", justify="right")
  table.add_column("Files", justify="right")
  table.add_column("Size", justify="right")

  for space in rows:
    stats = space.get_stats(ctx.session)
    table.add_row(
      space.id,
      space.slug,
      space.name,
      "yes" if space.is_active else "no",
      str(stats["memberCount"]),
      str(stats["totalFiles"]),
      format_file_size(stats["totalSize"]),
    )

  console.print()
  console.print(table)
  console.print(f"\n[bold]Total:[/bold] {len(rows):,} spaces")


@spaces.command("create")
@click.option("--name", required=True)
@click.option("--slug", required=True)
@click.option("--description")
@click.option("--owner-email", help="Assign this existing user as owner")
@click.pass_obj
def create_space(ctx: AdminContext, name, slug, description, owner_email):
  """Create a space."""
  try:
    request = CreateSpaceRequest(name=name, slug=slug, description=description)
  except SchemaValidationError as e:
    raise click.ClickException(f"Invalid space: {e.errors()[0]['msg']}")

  if Space.get_any_by_slug(request.slug, ctx.session):
    raise click.ClickException(f"Space '{request.slug}' already exists")

  owner = _require_user(ctx, owner_email) if owner_email else None

  space = Space.create(
    name=request.name,
    slug=request.slug,
    description=request.description,
    session=ctx.session,
  )
  console.print(f"[green]✓[/green] Created space {space.slug} ({space.id})")

  if owner:
    SpaceMember.create(
      space_id=space.id,
      user_id=owner.id,
      role=SpaceRole.OWNER.value,
      session=ctx.session,
    )
    console.print(f"[green]✓[/green] {owner.email} is owner of {space.slug}")


@spaces.command("deactivate")
@click.argument("slug")
@click.confirmation_option(prompt="Deactivate this space?")
@click.pass_obj
def deactivate_space(ctx: AdminContext, slug):
  """Hide a space from every user. Files and members are kept."""
  space = _require_space(ctx, slug)
  space.deactivate(ctx.session)
  console.print(f"[green]✓[/green] Space {slug} deactivated")


@cli.group()
def members():
  """Manage space memberships."""
  pass


@members.command("list")
@click.argument("slug")
@click.pass_obj
def list_members(ctx: AdminContext, slug):
  """List a space's members."""
  space = _require_space(ctx, slug)
  rows = SpaceMember.get_by_space_id(space.id, ctx.session)

  if not rows:
    console.print("\n[yellow]No members found.[/yellow]")
    return

  table = Table(title=f"Members of {slug}", show_header=True, header_style="bold cyan")
  table.add_column("User ID", no_wrap=True)
  table.add_column("Email", overflow="fold")
  table.add_column("Name", overflow="fold")
  table.add_column("Role")
  table.add_column("Joined")

  for member in rows:
    table.add_row(
      member.user_id,
      member.user.email,
      member.user.name or "",
      member.role,
      member.created_at.isoformat()[:10],
    )

  console.print()
  console.print(table)


@members.command("add")
@click.argument("slug")
@click.argument("email")
@click.option("--role", type=ROLE_CHOICE, default=SpaceRole.MEMBER.value)
@click.pass_obj
def add_member(ctx: AdminContext, slug, email, role):
  """Grant a user access to a space."""
  space = _require_space(ctx, slug)
  user = _require_user(ctx, email)
  if SpaceMember.get(space.id, user.id, ctx.session):
    raise click.ClickException(f"{email} is already a member of {slug}")

  SpaceMember.create(space_id=space.id, user_id=user.id, role=role, session=ctx.session)
  console.print(f"[green]✓[/green] {email} added to {slug} as {role}")


@members.command("role")
@click.argument("slug")
@click.argument("email")
@click.argument("role", type=ROLE_CHOICE)
@click.pass_obj
def set_member_role(ctx: AdminContext, slug, email, role):
  """Change a member's role."""
  space = _require_space(ctx, slug)
  user = _require_user(ctx, email)
  if SpaceMember.update_role(space.id, user.id, role, ctx.session) is None:
    raise click.ClickException(f"{email} is not a member of {slug}")
  console.print(f"[green]✓[/green] {email} is now {role} in {slug}")


@members.command("remove")
@click.argument("slug")
@click.argument("email")
@click.pass_obj
def remove_member(ctx: AdminContext, slug, email):
  """Revoke a user's access to a space."""
  space = _require_space(ctx, slug)
  user = _require_user(ctx, email)
  if not SpaceMember.remove(space.id, user.id, ctx.session):
    raise click.ClickException(f"{email} is not a member of {slug}")
  console.print(f"[green]✓[/green] {email} removed from {slug}")


@cli.command()
@click.option("--space", "space_slug", help="Only reconcile this space")
@click.option(
  "--delete-orphans", is_flag=True, help="Delete stored objects with no upload record"
)
@click.option(
  "--min-age",
  default=RECONCILE_MIN_OBJECT_AGE_SECONDS,
  show_default=True,
  help="Ignore objects newer than this many seconds",
)
@click.pass_obj
def reconcile(ctx: AdminContext, space_slug, delete_orphans, min_age):
  """Compare stored objects with upload records."""
  if space_slug:
    targets = [_require_space(ctx, space_slug)]
  else:
    targets = Space.list_active(ctx.session)

  registry = UploadRegistry(ctx.session)

  table = Table(title="Reconciliation", show_header=True, header_style="bold cyan")
  table.add_column("Space")
  table.add_column("Orphaned", justify="right")
  table.add_column("Missing", justify="right")
  table.add_column("Deleted", justify="right")
  table.add_column("Skipped (recent)", justify="right")

  problems = []
  for space in targets:
    report = reconcile_space(
      space,
      ctx.storage,
      registry,
      delete_orphans=delete_orphans,
      min_age_seconds=min_age,
    )
    table.add_row(
      report.space_slug,
      str(len(report.orphaned_objects)),
      str(len(report.missing_objects)),
      str(len(report.deleted_objects)),
      str(report.skipped_recent),
    )
    problems.extend(f"orphaned  {key}" for key in report.orphaned_objects)
    problems.extend(f"missing   {key}" for key in report.missing_objects)
    problems.extend(f"malformed {key}" for key in report.malformed_keys)

  console.print()
  console.print(table)
  for line in problems:
    console.print(f"  {line}")


@cli.command()
@click.argument("email")
@click.option("--hours", type=int, help="Token lifetime (defaults to JWT_EXPIRY_HOURS)")
@click.pass_obj
def token(ctx: AdminContext, email, hours):
  """Mint a session token for a user (local development)."""
  user = _require_user(ctx, email)
  click.echo(create_jwt_token(user.id, expires_in_hours=hours))


def main():
  try:
    cli()
  except SQLAlchemyError as e:
    logger.error(f"Database error: {e}")
    raise SystemExit(1)


if __name__ == "__main__":
  main()
