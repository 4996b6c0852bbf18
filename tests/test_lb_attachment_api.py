from fastapi import status


def _attach(client, lightsail):
    lightsail.load_balancers["lb1"] = []
    return client.post("/lb-attachments", json={"lb_name": "lb1", "instance_name": "i1"})


def test_attach_and_read(client, lightsail):
    response = _attach(client, lightsail)
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json() == {"id": "lb1,i1", "lb_name": "lb1", "instance_name": "i1"}

    read = client.get("/lb-attachments/lb1,i1")
    assert read.status_code == status.HTTP_200_OK
    assert read.json()["instance_name"] == "i1"


def test_load_balancer_deleted_out_of_band(client, lightsail, repo):
    _attach(client, lightsail)
    lightsail.delete_load_balancer(loadBalancerName="lb1")

    response = client.get("/lb-attachments/lb1,i1")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert repo.store == {}


def test_attach_to_missing_load_balancer_is_404(client):
    response = client.post("/lb-attachments", json={"lb_name": "nope", "instance_name": "i1"})
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_attach_failure_is_502(client, lightsail):
    lightsail.operation_statuses = ["Failed"]
    response = _attach(client, lightsail)
    assert response.status_code == status.HTTP_502_BAD_GATEWAY


def test_detach(client, lightsail):
    _attach(client, lightsail)

    response = client.delete("/lb-attachments/lb1,i1")
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert client.get("/lb-attachments/lb1,i1").status_code == status.HTTP_404_NOT_FOUND


def test_malformed_id_is_422(client):
    response = client.get("/lb-attachments/just-a-name")
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
