from fastapi.testclient import TestClient

from services.function_context.services.catalog import FunctionRegistration
from services.function_web.config import WebConfig
from services.function_web.main import create_app
from services.function_web.middleware import INVOCATION_ID_HEADER


def uppercase(value: str) -> str:
    return value.upper()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_list_functions(client):
    response = client.get("/functions")

    assert response.status_code == 200
    functions = {f["name"]: f for f in response.json()["functions"]}
    assert set(functions) == {
        "functionRouter",
        "uppercase",
        "reverse",
        "words",
        "record",
        "greet",
        "explode",
    }
    assert functions["greet"]["input_type"] == "Person"
    assert functions["greet"]["output_type"] == "dict"
    assert functions["words"]["kind"] == "supplier"
    assert functions["words"]["input_type"] is None
    assert functions["record"]["kind"] == "consumer"


def test_invoke_text_function(client):
    response = client.post("/uppercase", content=b"abc", headers={"Content-Type": "text/plain"})

    assert response.status_code == 200
    assert response.content == b"ABC"
    assert response.headers["content-type"].startswith("text/plain")


def test_invoke_json_function(client):
    response = client.post("/greet", json={"name": "Ann"})

    assert response.status_code == 200
    assert response.json() == {"greeting": "Hello Ann"}
    assert response.headers["content-type"] == "application/json"


def test_invoke_composition(client):
    response = client.post(
        "/uppercase|reverse", content=b"abc", headers={"Content-Type": "text/plain"}
    )

    assert response.status_code == 200
    assert response.content == b"CBA"


def test_invoke_consumer(client, consumed_values):
    response = client.post("/record", content=b"note", headers={"Content-Type": "text/plain"})

    assert response.status_code == 202
    assert consumed_values == ["note"]


def test_get_supplier(client):
    response = client.get("/words")

    assert response.status_code == 200
    assert response.json() == {"words": ["hello", "world"]}


def test_get_non_supplier_not_allowed(client):
    response = client.get("/uppercase")

    assert response.status_code == 405
    assert "not a supplier" in response.json()["message"]


def test_routing_function(client):
    response = client.post(
        "/functionRouter",
        content=b"abc",
        headers={"Content-Type": "text/plain", "function.definition": "reverse"},
    )

    assert response.status_code == 200
    assert response.content == b"cba"


def test_default_function():
    app = create_app(
        WebConfig(FUNCTIONS_SCAN_ENABLED=False, FUNCTIONS_DEFINITION="uppercase"),
        functions=[FunctionRegistration.of(uppercase)],
    )

    with TestClient(app) as client:
        response = client.post("/", content=b"abc", headers={"Content-Type": "text/plain"})

    assert response.content == b"ABC"


def test_invocation_id_header(client):
    generated = client.get("/health").headers[INVOCATION_ID_HEADER]
    echoed = client.get("/health", headers={INVOCATION_ID_HEADER: "inv-1"})

    assert generated
    assert echoed.headers[INVOCATION_ID_HEADER] == "inv-1"


def test_accept_header_orders_output_types(client):
    response = client.post(
        "/greet",
        json={"name": "Ann"},
        headers={"Accept": "text/plain;q=0.1, application/json"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"
