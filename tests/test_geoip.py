from types import SimpleNamespace

from geoip2.errors import AddressNotFoundError

from ovpn_geoip import ClientLocator
from ovpn_status_parser import Client, OpenVPNStatus


class FakeReader:
    def __init__(self, countries):
        self.countries = countries
        self.closed = False

    def city(self, address):
        if address not in self.countries:
            raise AddressNotFoundError(f"The address {address} is not in the database.")
        return SimpleNamespace(country=SimpleNamespace(iso_code=self.countries[address]))

    def close(self):
        self.closed = True


def test_locate_public_address():
    locator = ClientLocator(reader=FakeReader({"8.8.8.8": "US"}))

    assert locator.locate("8.8.8.8") == "US"


def test_locate_private_address():
    locator = ClientLocator(reader=FakeReader({}))

    assert locator.locate("192.168.1.100") == "RFC1918"
    assert locator.locate("10.8.0.2") == "RFC1918"


def test_locate_unknown_address():
    locator = ClientLocator(reader=FakeReader({}))

    assert locator.locate("9.9.9.9") == ""


def test_locate_malformed_address(caplog):
    locator = ClientLocator(reader=FakeReader({}))

    assert locator.locate("not-an-address") == ""
    assert "not-an-address" in caplog.text


def test_locate_clients():
    status = OpenVPNStatus(
        title="t",
        client_list=(
            Client(common_name="alice", real_address="8.8.8.8"),
            Client(common_name="user1", real_address="192.168.1.100"),
        ),
    )
    locator = ClientLocator(reader=FakeReader({"8.8.8.8": "US"}))

    located = locator.locate_clients(status)

    assert [c.location for c in located.client_list] == ["US", "RFC1918"]
    assert [c.common_name for c in located.client_list] == ["alice", "user1"]
    assert located.title == "t"
    assert status.client_list[0].location == ""


def test_close():
    reader = FakeReader({})

    ClientLocator(reader=reader).close()

    assert reader.closed
