"""
Register a project so SBOMs can be uploaded for it. Run from project root:
  python -m craguard.scripts.create_project NAME [--owner USERNAME]
Prints the new project id (use it as projectId).
"""
import argparse
import sys

from craguard.core.database import session_scope
from craguard.models.project import Project
from craguard.repositories.users import UserRepository


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a CRA Guard project.")
    parser.add_argument("name", help="Project name (1-255 chars)")
    parser.add_argument("--owner", default=None, help="Username that receives new-vulnerability notifications")
    args = parser.parse_args(argv)

    name = args.name.strip()
    if not name or len(name) > 255:
        print("Invalid project name length.", file=sys.stderr)
        return 1

    with session_scope() as db:
        owner_id = None
        if args.owner:
            owner = UserRepository(db).get_by_username(args.owner.strip())
            if owner is None:
                print(f"User '{args.owner}' not found.", file=sys.stderr)
                return 1
            owner_id = owner.id
        project = Project(name=name, owner_id=owner_id)
        db.add(project)
        db.flush()
        project_id = project.id
    print(project_id)
    return 0


if __name__ == "__main__":
    sys.exit(main())
