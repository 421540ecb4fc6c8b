from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from minegate.ec2_client import (
    ControlPlaneDataError,
    ControlPlaneTransportError,
    EC2ControlPlane,
    InstanceDescription,
)

from .conftest import INSTANCE_ID, PUBLIC_IP


def _instances_response(**instance):
    return {"Reservations": [{"Instances": [instance]}]}


@pytest.fixture
def client():
    return MagicMock()


def test_describe_instance(client):
    client.describe_instances.return_value = _instances_response(
        State={"Name": "running", "Code": 16}, PublicIpAddress=PUBLIC_IP
    )

    description = EC2ControlPlane(client).describe_instance(INSTANCE_ID)

    assert description == InstanceDescription(INSTANCE_ID, "running", PUBLIC_IP)
    client.describe_instances.assert_called_once_with(InstanceIds=[INSTANCE_ID])


def test_describe_instance_without_public_ip(client):
    client.describe_instances.return_value = _instances_response(
        State={"Name": "stopped", "Code": 80}
    )
    assert EC2ControlPlane(client).describe_instance(INSTANCE_ID).public_ip is None


@pytest.mark.parametrize(
    "response",
    [
        {"Reservations": []},
        {"Reservations": [{"Instances": []}]},
        _instances_response(PublicIpAddress=PUBLIC_IP),
        {},
    ],
)
def test_describe_instance_missing_data(client, response):
    client.describe_instances.return_value = response
    with pytest.raises(ControlPlaneDataError):
        EC2ControlPlane(client).describe_instance(INSTANCE_ID)


def test_client_error_is_transport_error(client):
    client.describe_instances.side_effect = ClientError(
        {"Error": {"Code": "UnauthorizedOperation", "Message": "denied"}},
        "DescribeInstances",
    )
    with pytest.raises(ControlPlaneTransportError):
        EC2ControlPlane(client).describe_instance(INSTANCE_ID)


def test_unknown_instance_is_data_error(client):
    client.describe_instances.side_effect = ClientError(
        {
            "Error": {
                "Code": "InvalidInstanceID.NotFound",
                "Message": f"The instance ID '{INSTANCE_ID}' does not exist",
            }
        },
        "DescribeInstances",
    )
    with pytest.raises(ControlPlaneDataError):
        EC2ControlPlane(client).describe_instance(INSTANCE_ID)


def test_network_error_is_transport_error(client):
    client.stop_instances.side_effect = EndpointConnectionError(
        endpoint_url="https://ec2.us-east-1.amazonaws.com"
    )
    with pytest.raises(ControlPlaneTransportError):
        EC2ControlPlane(client).stop(INSTANCE_ID)


@pytest.mark.parametrize(
    "response, expected",
    [
        ({"SpotInstanceRequests": [{"Status": {"Code": "marked-for-stop"}}]}, True),
        ({"SpotInstanceRequests": [{"Status": {"Code": "fulfilled"}}]}, False),
        ({"SpotInstanceRequests": [{}]}, False),
        ({"SpotInstanceRequests": []}, False),
        ({}, False),
    ],
)
def test_describe_pending_stop(client, response, expected):
    client.describe_spot_instance_requests.return_value = response

    assert EC2ControlPlane(client).describe_pending_stop(INSTANCE_ID) is expected
    client.describe_spot_instance_requests.assert_called_once_with(
        Filters=[{"Name": "instance-id", "Values": [INSTANCE_ID]}]
    )


def test_start_and_stop(client):
    control_plane = EC2ControlPlane(client)

    control_plane.start(INSTANCE_ID)
    control_plane.stop(INSTANCE_ID)

    client.start_instances.assert_called_once_with(InstanceIds=[INSTANCE_ID])
    client.stop_instances.assert_called_once_with(InstanceIds=[INSTANCE_ID])
