"""Gallery listing, lookup, deletion and share link tests."""

from concurrent.futures import ThreadPoolExecutor

from helpers import register_user, upload_gif

from gifshare.models.gif import Gif
from gifshare.models.user import User
from gifshare.services.auth import get_password_hash


def titles(response):
    return [gif["title"] for gif in response.json()]


# --- Listing ---


def test_private_gif_hidden_from_anonymous(client):
    """Scenario: a private upload is only listed for its owner."""
    owner = register_user(client, "a@x.com", name="A")
    login = client.post("/api/auth/login", json={"email": "a@x.com", "password": "testpass123"})
    assert login.status_code == 200
    gif = upload_gif(client, owner, title="secret")

    anonymous = client.get("/api/gifs")
    assert anonymous.status_code == 200
    assert gif["id"] not in [g["id"] for g in anonymous.json()]

    as_owner = client.get("/api/gifs", headers=owner)
    assert gif["id"] in [g["id"] for g in as_owner.json()]


def test_list_public_and_own(client, auth_headers, other_headers):
    """Test that a signed-in user sees public GIFs plus their own private ones."""
    upload_gif(client, auth_headers, title="mine private")
    upload_gif(client, other_headers, title="theirs private")
    upload_gif(client, other_headers, title="theirs public", is_public=True)

    response = client.get("/api/gifs", headers=auth_headers)
    assert response.status_code == 200
    assert sorted(titles(response)) == ["mine private", "theirs public"]


def test_list_newest_first(client, auth_headers):
    """Test that results are ordered newest first."""
    upload_gif(client, auth_headers, title="first", is_public=True)
    upload_gif(client, auth_headers, title="second", is_public=True)
    upload_gif(client, auth_headers, title="third", is_public=True)

    response = client.get("/api/gifs")
    assert titles(response) == ["third", "second", "first"]


def test_list_search_is_case_insensitive(client, auth_headers):
    """Test searching titles by substring."""
    upload_gif(client, auth_headers, title="Funny Cat", is_public=True)
    upload_gif(client, auth_headers, title="sleepy dog", is_public=True)

    response = client.get("/api/gifs", params={"q": "cAt"})
    assert titles(response) == ["Funny Cat"]


def test_list_search_wildcards_are_literal(client, auth_headers):
    """Test that LIKE wildcards in the query match literally."""
    upload_gif(client, auth_headers, title="100% cat", is_public=True)
    upload_gif(client, auth_headers, title="dog", is_public=True)

    assert titles(client.get("/api/gifs", params={"q": "%"})) == ["100% cat"]
    assert titles(client.get("/api/gifs", params={"q": "_"})) == []


def test_list_by_owner_as_owner(client, auth_headers, other_headers):
    """Test that filtering by your own id includes your private GIFs."""
    upload_gif(client, auth_headers, title="private", is_public=False)
    upload_gif(client, auth_headers, title="public", is_public=True)
    upload_gif(client, other_headers, title="someone else", is_public=True)

    response = client.get(
        "/api/gifs", params={"userId": auth_headers.user_id}, headers=auth_headers
    )
    assert sorted(titles(response)) == ["private", "public"]


def test_list_by_other_owner(client, auth_headers, other_headers):
    """Test that filtering by someone else's id shows only their public GIFs."""
    upload_gif(client, other_headers, title="their private", is_public=False)
    upload_gif(client, other_headers, title="their public", is_public=True)

    response = client.get(
        "/api/gifs", params={"userId": other_headers.user_id}, headers=auth_headers
    )
    assert titles(response) == ["their public"]

    anonymous = client.get("/api/gifs", params={"userId": other_headers.user_id})
    assert titles(anonymous) == ["their public"]


def test_list_skips_ownerless_gifs_for_anonymous(client, auth_headers, db):
    """Test that public GIFs without a real owner are not listed anonymously."""
    upload_gif(client, auth_headers, title="owned", is_public=True)
    db.add(
        Gif(
            user_id=0,
            title="ownerless",
            filename="0-legacy.gif",
            filepath="http://testserver/uploads/0-legacy.gif",
            share_url="http://testserver/g/0-legacy.gif",
            is_public=True,
        )
    )
    db.commit()

    assert titles(client.get("/api/gifs")) == ["owned"]


def test_list_by_owner_skips_ownerless_gifs_for_anonymous(client, auth_headers, db):
    """Test that filtering by a non-user id never lists ownerless GIFs anonymously."""
    upload_gif(client, auth_headers, title="owned", is_public=True)
    db.add(
        Gif(
            user_id=0,
            title="ownerless",
            filename="0-legacy.gif",
            filepath="http://testserver/uploads/0-legacy.gif",
            share_url="http://testserver/g/0-legacy.gif",
            is_public=True,
        )
    )
    db.commit()

    response = client.get("/api/gifs", params={"userId": 0})
    assert response.status_code == 200
    assert titles(response) == []


def test_list_with_invalid_token(client):
    """Test that a bad token on the optional-auth listing is still rejected."""
    response = client.get("/api/gifs", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


def test_list_malformed_user_id(client):
    """Test that a non-numeric owner filter is a 400."""
    response = client.get("/api/gifs", params={"userId": "abc"})
    assert response.status_code == 400


def test_concurrent_searches_agree(live_client, db):
    """Scenario: concurrent anonymous searches receive the same ordered results."""
    user = User(email="seed@example.com", name="Seed", password_hash=get_password_hash("pw123456"))
    db.add(user)
    db.commit()
    for i, title in enumerate(["cat one", "dog", "cat two", "Cat three", "private cat"]):
        db.add(
            Gif(
                user_id=user.id,
                title=title,
                filename=f"{i}-seed.gif",
                filepath=f"http://testserver/uploads/{i}-seed.gif",
                share_url=f"http://testserver/g/{i}-seed.gif",
                is_public=not title.startswith("private"),
            )
        )
    db.commit()

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [pool.submit(live_client.get, "/api/gifs", params={"q": "cat"}) for _ in range(2)]
        first, second = [f.result() for f in futures]

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()
    assert titles(first) == ["Cat three", "cat two", "cat one"]


# --- Single fetch ---


def test_get_public_gif_anonymously(client, auth_headers):
    """Test that public GIFs can be fetched by anyone."""
    gif = upload_gif(client, auth_headers, is_public=True)
    response = client.get(f"/api/gifs/{gif['id']}")
    assert response.status_code == 200
    assert response.json()["id"] == gif["id"]


def test_get_private_gif_visibility(client, auth_headers, other_headers):
    """Test that private GIFs are only visible to their owner."""
    gif = upload_gif(client, auth_headers, is_public=False)

    assert client.get(f"/api/gifs/{gif['id']}").status_code == 403
    assert client.get(f"/api/gifs/{gif['id']}", headers=other_headers).status_code == 403

    response = client.get(f"/api/gifs/{gif['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["filename"] == gif["filename"]


def test_get_missing_gif(client):
    """Test fetching a GIF that does not exist."""
    response = client.get("/api/gifs/424242")
    assert response.status_code == 404
    assert response.json()["detail"] == "GIF not found"


def test_get_malformed_id(client):
    """Test that a non-numeric id is a 400."""
    assert client.get("/api/gifs/not-a-number").status_code == 400


# --- Deletion ---


def test_delete_own_gif(client, auth_headers, settings, db):
    """Test that the owner can delete a GIF and its file."""
    gif = upload_gif(client, auth_headers)
    path = settings.upload_dir / gif["filename"]
    assert path.exists()

    response = client.delete(f"/api/gifs/{gif['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "GIF deleted successfully"
    assert db.query(Gif).count() == 0
    assert not path.exists()


def test_delete_other_users_gif(client, auth_headers, other_headers, settings, db):
    """Test that a non-owner cannot delete, and learns nothing about the GIF."""
    gif = upload_gif(client, auth_headers, is_public=True)
    path = settings.upload_dir / gif["filename"]

    response = client.delete(f"/api/gifs/{gif['id']}", headers=other_headers)
    missing = client.delete("/api/gifs/424242", headers=other_headers)

    assert response.status_code == missing.status_code == 404
    assert response.json() == missing.json() == {"detail": "GIF not found or unauthorized"}
    assert db.query(Gif).count() == 1
    assert path.read_bytes()


def test_delete_requires_auth(client, auth_headers, db):
    """Test that anonymous deletes are rejected."""
    gif = upload_gif(client, auth_headers)
    response = client.delete(f"/api/gifs/{gif['id']}")
    assert response.status_code == 401
    assert db.query(Gif).count() == 1


def test_delete_with_missing_file(client, auth_headers, settings, db):
    """Test that deleting still succeeds when the file is already gone."""
    gif = upload_gif(client, auth_headers)
    (settings.upload_dir / gif["filename"]).unlink()

    response = client.delete(f"/api/gifs/{gif['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert db.query(Gif).count() == 0


# --- Sharing ---


def test_share_links(client, auth_headers):
    """Test the direct, HTML and Markdown share snippets."""
    gif = upload_gif(client, auth_headers, is_public=True, title='Cat "zoom"')

    response = client.get(f"/api/gifs/{gif['id']}/share")
    assert response.status_code == 200
    links = response.json()
    assert links["direct"] == gif["share_url"]
    assert links["html"] == f'<img src="{gif["share_url"]}" alt="Cat &quot;zoom&quot;" />'
    assert links["markdown"] == f'![Cat "zoom"]({gif["share_url"]})'


def test_share_links_private(client, auth_headers, other_headers):
    """Test that share links follow the same visibility rule."""
    gif = upload_gif(client, auth_headers)
    assert client.get(f"/api/gifs/{gif['id']}/share", headers=other_headers).status_code == 403
    assert client.get(f"/api/gifs/{gif['id']}/share", headers=auth_headers).status_code == 200


def test_share_url_redirects_to_file(client, auth_headers):
    """Test that a share URL resolves to the stored file."""
    gif = upload_gif(client, auth_headers, is_public=True)

    response = client.get(f"/g/{gif['filename']}", follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"] == f"/uploads/{gif['filename']}"


def test_share_url_unknown_or_private(client, auth_headers):
    """Test that share URLs only resolve for public GIFs."""
    gif = upload_gif(client, auth_headers, is_public=False)
    assert client.get(f"/g/{gif['filename']}", follow_redirects=False).status_code == 404
    assert client.get("/g/nothing-here.gif", follow_redirects=False).status_code == 404
