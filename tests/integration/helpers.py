import uuid


def unique_user() -> dict[str, str]:
    uid = uuid.uuid4().hex[:8]
    return {
        "username": f"trader_{uid}",
        "email": f"trader_{uid}@example.com",
        "password": "TestPass1",
    }
