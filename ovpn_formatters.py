import json
import time

from prometheus_client.core import (
    CollectorRegistry,
    CounterMetricFamily,
    GaugeMetricFamily,
    InfoMetricFamily,
)
from prometheus_client.openmetrics.exposition import generate_latest

from ovpn_status_parser import ServerInfo

# (attribute, document key, always present)
CLIENT_KEYS = (
    ("common_name", "commonName", True),
    ("real_address", "realAddress", True),
    ("virtual_address", "virtualAddress", False),
    ("virtual_ipv6_address", "virtualIPv6Address", False),
    ("bytes_received", "bytesReceived", True),
    ("bytes_sent", "bytesSent", True),
    ("connected_since", "connectedSince", True),
    ("connected_since_time", "connectedSinceTime", False),
    ("username", "username", False),
    ("client_id", "clientId", False),
    ("peer_id", "peerId", False),
    ("data_cipher", "dataCipher", False),
    ("location", "location", False),
)

ROUTE_KEYS = (
    ("virtual_address", "virtualAddress", True),
    ("common_name", "commonName", True),
    ("real_address", "realAddress", True),
    ("last_ref", "lastRef", True),
    ("last_ref_time", "lastRefTime", True),
)

SERVER_KEYS = (
    ("id", "id", True),
    ("local", "local", False),
    ("port", "port", False),
    ("proto", "proto", False),
    ("dev", "dev", False),
)


def _record_document(record, keys):
    document = {}
    for attribute, key, always in keys:
        value = getattr(record, attribute)
        if always or value:
            document[key] = value
    return document


def status_document(status):
    document = {}
    if status.server is not None:
        document["server"] = _record_document(status.server, SERVER_KEYS)
    if status.title:
        document["title"] = status.title
    if status.time:
        document["time"] = list(status.time)
    document["clientList"] = [
        _record_document(client, CLIENT_KEYS) for client in status.client_list
    ]
    if status.routing_table:
        document["routingTable"] = [
            _record_document(route, ROUTE_KEYS) for route in status.routing_table
        ]
    return document


def format_json(status, indent=False):
    if indent:
        return json.dumps(status_document(status), indent=2) + "\n"
    return json.dumps(status_document(status), separators=(",", ":")) + "\n"


class StatusCollector:
    """Prometheus collector exposing one parsed status snapshot."""

    def __init__(self, status, now=None):
        self.status = status
        self.server = status.server or ServerInfo(id="")
        self.now = int(time.time()) if now is None else now

    def client_labels(self, client):
        return [
            client.common_name,
            client.real_address,
            self.server.id,
            client.virtual_address,
            client.username,
        ]

    def route_labels(self, route):
        return [
            route.virtual_address,
            route.common_name,
            route.real_address,
            self.server.id,
        ]

    def info_labels(self):
        labels = {
            "title": self.status.title,
            "server_id": self.server.id,
            "server_local": self.server.local,
            "server_port": self.server.port,
            "server_proto": self.server.proto,
            "server_dev": self.server.dev,
        }
        if self.status.time:
            labels["updated_at"] = self.status.time[0]
        release = self.status.release
        if release is not None:
            labels["version"] = str(release)
        return labels

    def collect(self):
        client_labels = [
            "common_name",
            "real_address",
            "server_id",
            "virtual_address",
            "username",
        ]
        route_labels = ["virtual_address", "common_name", "real_address", "server_id"]

        bytes_received = CounterMetricFamily(
            "openvpn_client_bytes_received",
            "Total bytes received from client",
            labels=client_labels,
        )
        bytes_sent = CounterMetricFamily(
            "openvpn_client_bytes_sent",
            "Total bytes sent to client",
            labels=client_labels,
        )
        duration = GaugeMetricFamily(
            "openvpn_client_connected_duration_seconds",
            "Time in seconds since client connected",
            labels=client_labels,
            unit="seconds",
        )
        connected = GaugeMetricFamily(
            "openvpn_client_connected",
            "Client connection status (1 = connected)",
            labels=client_labels,
        )
        for client in self.status.client_list:
            labels = self.client_labels(client)
            bytes_received.add_metric(labels, client.bytes_received)
            bytes_sent.add_metric(labels, client.bytes_sent)
            # v1 status files carry no connect epoch
            if client.connected_since_time:
                duration.add_metric(labels, self.now - client.connected_since_time)
            connected.add_metric(labels, 1)

        clients_total = GaugeMetricFamily(
            "openvpn_clients_connected",
            "Total number of connected clients",
            labels=["server_id"],
        )
        clients_total.add_metric([self.server.id], len(self.status.client_list))
        routes_total = GaugeMetricFamily(
            "openvpn_routing_entries",
            "Total number of routing table entries",
            labels=["server_id"],
        )
        routes_total.add_metric([self.server.id], len(self.status.routing_table))

        last_ref = GaugeMetricFamily(
            "openvpn_routing_last_ref_seconds",
            "Unix timestamp of last routing table reference",
            labels=route_labels,
            unit="seconds",
        )
        for route in self.status.routing_table:
            last_ref.add_metric(self.route_labels(route), route.last_ref_time)

        status_info = InfoMetricFamily(
            "openvpn_status",
            "OpenVPN status file metadata",
            value=self.info_labels(),
        )

        for family in (
            bytes_received,
            bytes_sent,
            duration,
            connected,
            clients_total,
            routes_total,
            last_ref,
            status_info,
        ):
            if family.samples:
                yield family


def format_openmetrics(status, now=None):
    registry = CollectorRegistry(auto_describe=False)
    registry.register(StatusCollector(status, now=now))
    return generate_latest(registry).decode("utf-8")

