from ipaddress import ip_address
from logging import debug, warning

from geoip2 import database
from geoip2.errors import AddressNotFoundError


class ClientLocator:
    def __init__(self, geoip_data="", *, reader=None):
        if reader is None:
            # raises OSError or maxminddb.InvalidDatabaseError
            reader = database.Reader(geoip_data)
        self.gi = reader

    def locate(self, address):
        try:
            remote_ip = ip_address(address)
        except ValueError:
            warning(f"Cannot locate malformed address: {address!r}")
            return ""
        if remote_ip.is_private:
            return "RFC1918"
        try:
            gir = self.gi.city(str(remote_ip))
        except (AddressNotFoundError, TypeError) as e:
            debug(f"No location for {remote_ip}: {e}")
            return ""
        return gir.country.iso_code or ""

    def locate_clients(self, status):
        client_list = tuple(
            client._replace(location=self.locate(client.real_address))
            for client in status.client_list
        )
        return status._replace(client_list=client_list)

    def close(self):
        self.gi.close()
