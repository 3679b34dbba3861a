"""Example: register employees through the service layer (no Flask).

Uses the in-memory store, so it runs without a database.
"""

from src.employee_registry.employee_registry.container import build_container
from src.employee_registry.employee_registry.core.exceptions import DuplicateError


def main():
    container = build_container(store_backend="memory", photo_dir="instance/example-photos")
    service = container.employee_service

    ann = service.create(
        {"first_name": "Ann", "last_name": "Lee", "department": "Engineering", "email": "ann@x.io"},
        base_url="http://localhost:5000",
    )
    print(ann.identifier, ann.verify_url)

    try:
        service.create({"first_name": "Anne", "last_name": "Lee", "email": "ANN@x.io"}, base_url="http://localhost:5000")
    except DuplicateError as e:
        print(f"rejected: {e} (field={e.field.value})")

    for record in service.search(q="lee"):
        print(record.identifier, record.full_name)


if __name__ == "__main__":
    main()
