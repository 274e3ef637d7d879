"""Shared test helpers."""

# Smallest valid GIF: 1x1 transparent pixel
GIF_BYTES = (
    b"GIF89a\x01\x00\x01\x00\x80\x00\x00\xff\xff\xff\x00\x00\x00"
    b"!\xf9\x04\x01\x00\x00\x00\x00,\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x02D\x01\x00;"
)


class AuthHeaders(dict):
    """Dict subclass that also stores user_id and email."""

    def __init__(self, *args, user_id: int | None = None, email: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.email = email


def register_user(client, email: str, name: str = "Test User") -> AuthHeaders:
    """Register a user and return auth headers for it."""
    response = client.post(
        "/api/auth/register",
        json={"email": email, "password": "testpass123", "name": name},
    )
    assert response.status_code == 201, response.text
    data = response.json()
    return AuthHeaders(
        {"Authorization": f"Bearer {data['access_token']}"},
        user_id=data["user"]["id"],
        email=email,
    )


def upload_gif(client, headers, name="funny.gif", is_public=False, title=None, data=GIF_BYTES):
    """Upload one GIF and return the created record."""
    form = {"isPublic": "true" if is_public else "false"}
    if title:
        form["title"] = title
    response = client.post(
        "/api/upload",
        headers=headers,
        files=[("gif", (name, data, "image/gif"))],
        data=form,
    )
    assert response.status_code == 201, response.text
    return response.json()[0]
