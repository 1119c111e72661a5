from datetime import datetime

from conftest import auth_headers_for, make_movie


def film_payload(*titles, status="to-watch", **overrides):
    return {"films": [dict(make_movie(title), status=status, **overrides) for title in titles]}


def create(client, headers, *titles, **kwargs):
    response = client.post("/api/films", json=film_payload(*titles, **kwargs), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_films_require_authentication(client):
    assert client.get("/api/films").status_code == 401
    response = client.post("/api/films", json=film_payload("Heat"))
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_invalid_token_is_unauthorized(client):
    response = client.get("/api/films", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_create_and_list_films(client, auth_headers):
    created = create(client, auth_headers, "Heat", "Ronin")

    assert [film["title"] for film in created] == ["Heat", "Ronin"]
    assert created[0]["status"] == "to-watch"
    assert created[0]["genres"] == ["Sci-Fi", "Thriller"]

    response = client.get("/api/films", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["page"] == 1
    assert body["limit"] == 9
    assert {film["title"] for film in body["data"]} == {"Heat", "Ronin"}


def test_create_duplicate_returns_conflict_with_titles(client, auth_headers):
    create(client, auth_headers, "Heat")

    response = client.post("/api/films", json=film_payload("Ronin", "Heat"), headers=auth_headers)

    assert response.status_code == 409
    body = response.json()
    assert body["details"] == {"titles": ["Heat"]}
    assert "Heat" in body["error"]

    listing = client.get("/api/films", headers=auth_headers).json()
    assert [film["title"] for film in listing["data"]] == ["Heat"]


def test_create_validation_errors_are_400(client, auth_headers):
    future_year = datetime.now().year + 1
    bad_payloads = [
        {"films": []},
        film_payload("Heat", year=future_year),
        film_payload("Heat", year=1800),
        film_payload("Heat", genres=[]),
        film_payload("Heat", actors=[]),
        film_payload("Heat", status="maybe"),
        film_payload("   "),
        film_payload("<script>alert(1)</script>"),
        film_payload(*[f"Film {i}" for i in range(101)]),
    ]

    for payload in bad_payloads:
        response = client.post("/api/films", json=payload, headers=auth_headers)
        assert response.status_code == 400, payload
        assert response.json()["error"] == "Validation failed"
        assert response.json()["details"]

    assert client.get("/api/films", headers=auth_headers).json()["total"] == 0


def test_description_html_is_stripped(client, auth_headers):
    created = create(client, auth_headers, "Heat", description="<b>Bold</b> heist film")

    assert created[0]["description"] == "Bold heist film"


def test_list_filters_by_status_and_search(client, auth_headers):
    create(client, auth_headers, "The Godfather", "Godzilla", "Heat")
    create(client, auth_headers, "The Godfather Part II", status="watched")

    to_watch = client.get("/api/films", params={"status": "to-watch", "search": "god"}, headers=auth_headers)
    watched = client.get("/api/films", params={"status": "watched"}, headers=auth_headers)

    assert sorted(film["title"] for film in to_watch.json()["data"]) == ["Godzilla", "The Godfather"]
    assert [film["title"] for film in watched.json()["data"]] == ["The Godfather Part II"]


def test_list_pagination(client, auth_headers):
    create(client, auth_headers, *[f"Film {i}" for i in range(12)])

    first = client.get("/api/films", params={"page": 1}, headers=auth_headers).json()
    second = client.get("/api/films", params={"page": 2}, headers=auth_headers).json()

    assert first["total"] == second["total"] == 12
    assert len(first["data"]) == 9
    assert len(second["data"]) == 3
    assert not {f["id"] for f in first["data"]} & {f["id"] for f in second["data"]}


def test_list_rejects_bad_query_params(client, auth_headers):
    for params in ({"status": "maybe"}, {"page": 0}, {"limit": 101}, {"limit": 0}):
        response = client.get("/api/films", params=params, headers=auth_headers)
        assert response.status_code == 400, params


def test_list_only_shows_own_films(client, auth_headers, other_user):
    create(client, auth_headers, "Heat")

    response = client.get("/api/films", headers=auth_headers_for(other_user))

    assert response.json()["total"] == 0


def test_update_status(client, auth_headers):
    film = create(client, auth_headers, "Heat")[0]

    response = client.post(f"/api/films/{film['id']}/status", json={"new_status": "watched"}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "watched"
    assert response.json()["id"] == film["id"]


def test_update_status_rejects_unknown_status(client, auth_headers):
    film = create(client, auth_headers, "Heat")[0]

    response = client.post(f"/api/films/{film['id']}/status", json={"new_status": "seen"}, headers=auth_headers)

    assert response.status_code == 400


def test_update_status_of_foreign_film_is_404(client, auth_headers, other_user):
    film = create(client, auth_headers, "Heat")[0]

    response = client.post(
        f"/api/films/{film['id']}/status",
        json={"new_status": "rejected"},
        headers=auth_headers_for(other_user),
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Film not found or not authorized"}


def test_delete_film(client, auth_headers):
    film = create(client, auth_headers, "Heat")[0]

    response = client.delete(f"/api/films/{film['id']}", headers=auth_headers)

    assert response.status_code == 204
    assert client.get("/api/films", headers=auth_headers).json()["total"] == 0
    assert client.delete(f"/api/films/{film['id']}", headers=auth_headers).status_code == 404


def test_delete_foreign_film_is_404(client, auth_headers, other_user):
    film = create(client, auth_headers, "Heat")[0]

    response = client.delete(f"/api/films/{film['id']}", headers=auth_headers_for(other_user))

    assert response.status_code == 404
    assert client.get("/api/films", headers=auth_headers).json()["total"] == 1


def test_non_positive_film_id_is_400(client, auth_headers):
    assert client.delete("/api/films/0", headers=auth_headers).status_code == 400
    assert client.post("/api/films/abc/status", json={"new_status": "watched"}, headers=auth_headers).status_code == 400
