STRONG_PASSWORD = "Passw0rd!"


def register(client, name="John Doe", email="john@test.com", password=STRONG_PASSWORD):
    response = client.post("/user/register", json={"name": name, "email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


def login(client, email="john@test.com", password=STRONG_PASSWORD):
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response


def bearer(access_token):
    return {"Authorization": f"Bearer {access_token}"}
