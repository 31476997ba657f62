"""
Frontmatter Commands - The --- block at the top of planning documents.

Commands:
- frontmatter get: All fields or one
- frontmatter set: One field, body untouched
- frontmatter merge: Several fields from a JSON object
- frontmatter validate: Required fields of a document kind
"""

import json

import click

from .common import fail, resolve_path, run_and_emit


def register(cli):
    """Register frontmatter commands with CLI."""

    @cli.group("frontmatter")
    def frontmatter_group():
        """Read and edit document frontmatter.

        \b
            frontmatter get FILE [--field NAME]
            frontmatter set FILE --field NAME --value VALUE
            frontmatter merge FILE --data '{"key": "value"}'
            frontmatter validate FILE --schema plan|summary|verification
        """
        pass

    @frontmatter_group.command("get")
    @click.argument("file")
    @click.option("--field", default=None, help="Only this field")
    @click.pass_obj
    def frontmatter_get(obj, file, field):
        """Print the frontmatter of FILE as JSON."""
        from gsdtools.frontmatter import get_frontmatter_field
        run_and_emit(get_frontmatter_field, resolve_path(obj, file), field)

    @frontmatter_group.command("set")
    @click.argument("file")
    @click.option("--field", required=True, help="Field name")
    @click.option("--value", required=True, help="New value, parsed as JSON when possible")
    @click.pass_obj
    def frontmatter_set(obj, file, field, value):
        """Set one frontmatter field."""
        from gsdtools.frontmatter import coerce_field_value, set_frontmatter_field
        run_and_emit(set_frontmatter_field, resolve_path(obj, file), field, coerce_field_value(value))

    @frontmatter_group.command("merge")
    @click.argument("file")
    @click.option("--data", required=True, help="JSON object of fields to set")
    @click.pass_obj
    def frontmatter_merge(obj, file, data):
        """Set every field of a JSON object."""
        from gsdtools.frontmatter import merge_frontmatter
        try:
            values = json.loads(data)
        except json.JSONDecodeError as e:
            fail(f"Invalid JSON for --data: {e}")
        if not isinstance(values, dict):
            fail("--data must be a JSON object")
        run_and_emit(merge_frontmatter, resolve_path(obj, file), values)

    @frontmatter_group.command("validate")
    @click.argument("file")
    @click.option("--schema", required=True, help="plan, summary or verification")
    @click.pass_obj
    def frontmatter_validate(obj, file, schema):
        """Check FILE for the required fields of a schema."""
        from gsdtools.verify import validate_frontmatter
        run_and_emit(validate_frontmatter, resolve_path(obj, file), schema)
