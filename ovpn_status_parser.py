import re
from enum import IntEnum
from logging import debug
from typing import NamedTuple, Optional

from semantic_version import Version as semver


class StatusVersion(IntEnum):
    V1 = 1
    V2 = 2
    V3 = 3

    @property
    def delimiter(self):
        return "\t" if self is StatusVersion.V3 else ","


class ServerInfo(NamedTuple):
    id: str
    local: str = ""
    port: str = ""
    proto: str = ""
    dev: str = ""


class Client(NamedTuple):
    common_name: str
    real_address: str
    virtual_address: str = ""
    virtual_ipv6_address: str = ""
    bytes_received: int = 0
    bytes_sent: int = 0
    connected_since: str = ""
    connected_since_time: int = 0
    username: str = ""
    client_id: int = 0
    peer_id: int = 0
    data_cipher: str = ""
    location: str = ""


class Route(NamedTuple):
    virtual_address: str
    common_name: str
    real_address: str
    last_ref: str = ""
    last_ref_time: int = 0


class OpenVPNStatus(NamedTuple):
    title: str = ""
    time: tuple[str, ...] = ()
    client_list: tuple[Client, ...] = ()
    routing_table: tuple[Route, ...] = ()
    server: Optional[ServerInfo] = None

    @property
    def release(self) -> Optional[semver]:
        # TITLE carries e.g. "OpenVPN 2.5.1 x86_64-pc-linux-gnu [SSL (OpenSSL)] ..."
        parts = self.title.split(" ")
        if len(parts) < 2 or parts[0] != "OpenVPN":
            return None
        try:
            return semver.coerce(parts[1])
        except ValueError:
            debug(f"Unrecognised OpenVPN release in title: {self.title!r}")
            return None

    def with_server(self, server: ServerInfo) -> "OpenVPNStatus":
        return self._replace(server=server)


class StatusError(Exception):
    pass


class StatusFileError(StatusError):
    pass


class ParseError(StatusError):
    def __init__(self, line, field, value, cause):
        super().__init__(line, field, value, cause)
        self.line = line
        self.field = field
        self.value = value
        self.cause = cause

    def __str__(self):
        return f"line {self.line}, field {self.field}, value {self.value!r}: {self.cause}"


_INTEGER = re.compile(r"[+-]?[0-9]+")
_UNSIGNED = re.compile(r"\+?[0-9]+")


class NumberReader:
    """Reads numeric sub-fields of one line, keeping the first failure."""

    def __init__(self, line_num):
        self.line_num = line_num
        self.error = None

    def read(self, field, value, *, unsigned=False):
        if value == "":
            return 0
        if (_UNSIGNED if unsigned else _INTEGER).fullmatch(value):
            return int(value)
        if self.error is None:
            kind = "non-negative integer" if unsigned else "integer"
            self.error = ParseError(
                self.line_num, field, value, f"invalid {kind} {value!r}"
            )
        return 0


def split_real_address(value):
    if value.startswith("[") and "]" in value:
        # [2001:db8::1]:1194
        return value[1 : value.index("]")]
    if value.endswith(")") and "(" in value:
        # 2001:db8::1(1194)
        return value[: value.rindex("(")]
    address, sep, _port = value.rpartition(":")
    return address if sep else value


def _short_line(line_num, field, fields, minimum, *, at_least=True):
    qualifier = "at least " if at_least else ""
    return ParseError(
        line_num,
        field,
        ",".join(fields),
        f"expected {qualifier}{minimum} fields, got {len(fields)}",
    )


def decode_title(fields, sections, line_num):
    if len(fields) < 2:
        return _short_line(line_num, "TITLE", fields, 2)
    sections["title"] = fields[1]
    return None


def decode_time(fields, sections, line_num):
    if len(fields) < 2:
        return _short_line(line_num, "TIME", fields, 2)
    sections["time"] = list(fields[1:])
    return None


def decode_client_list_v1(fields, sections, line_num):
    # <common name>,<real address>,<bytes received>,<bytes sent>,<connected since>
    if len(fields) < 5:
        return _short_line(line_num, "CLIENT_LIST_V1", fields, 5, at_least=False)
    numbers = NumberReader(line_num)
    client = Client(
        common_name=fields[0],
        real_address=split_real_address(fields[1]),
        bytes_received=numbers.read("bytesReceived", fields[2], unsigned=True),
        bytes_sent=numbers.read("bytesSent", fields[3], unsigned=True),
        connected_since=fields[4],
    )
    sections["client_list"].append(client)
    return numbers.error


def decode_client_list(fields, sections, line_num):
    # CLIENT_LIST, then: common name, real address, virtual address,
    # virtual IPv6 address, bytes received, bytes sent, connected since,
    # connected since (time_t), username, client id, peer id[, data cipher]
    if len(fields) < 12:
        return _short_line(line_num, "CLIENT_LIST", fields, 12)
    numbers = NumberReader(line_num)
    client = Client(
        common_name=fields[1],
        real_address=split_real_address(fields[2]),
        virtual_address=fields[3],
        virtual_ipv6_address=fields[4],
        bytes_received=numbers.read("bytesReceived", fields[5], unsigned=True),
        bytes_sent=numbers.read("bytesSent", fields[6], unsigned=True),
        connected_since=fields[7],
        connected_since_time=numbers.read("connectedSinceTime", fields[8]),
        username=fields[9],
        client_id=numbers.read("clientId", fields[10]),
        peer_id=numbers.read("peerId", fields[11]),
        data_cipher=fields[12] if len(fields) > 12 else "",
    )
    sections["client_list"].append(client)
    return numbers.error


def decode_routing_table(fields, sections, line_num):
    # ROUTING_TABLE, then: virtual address, common name, real address,
    # last ref, last ref (time_t)
    if len(fields) < 6:
        return _short_line(line_num, "ROUTING_TABLE", fields, 6, at_least=False)
    numbers = NumberReader(line_num)
    route = Route(
        virtual_address=fields[1],
        common_name=fields[2],
        real_address=split_real_address(fields[3]),
        last_ref=fields[4],
        last_ref_time=numbers.read("lastRefTime", fields[5]),
    )
    sections["routing_table"].append(route)
    return numbers.error


_TAGGED_DECODERS = {
    "TITLE": decode_title,
    "TIME": decode_time,
    "CLIENT_LIST": decode_client_list,
    "ROUTING_TABLE": decode_routing_table,
}

# HEADER lines and unknown tags (GLOBAL_STATS, END, ...) have no entry
LINE_DECODERS = {
    StatusVersion.V2: _TAGGED_DECODERS,
    StatusVersion.V3: _TAGGED_DECODERS,
}


def dispatch_line(line, sections, line_num, version):
    fields = line.split(version.delimiter)
    if version is StatusVersion.V1:
        return decode_client_list_v1(fields, sections, line_num)
    decoder = LINE_DECODERS[version].get(fields[0])
    if decoder is None:
        debug(f"line {line_num}: ignoring {fields[0]!r} record")
        return None
    return decoder(fields, sections, line_num)


def _new_sections():
    return {"title": "", "time": [], "client_list": [], "routing_table": []}


def _freeze(sections):
    return OpenVPNStatus(
        title=sections["title"],
        time=tuple(sections["time"]),
        client_list=tuple(sections["client_list"]),
        routing_table=tuple(sections["routing_table"]),
    )


def parse_status_file(path, version=StatusVersion.V3):
    version = StatusVersion(version)
    try:
        fh = open(path, encoding="utf-8", errors="replace")
    except OSError as e:
        return None, [StatusFileError(f"failed to open file: {e}")]

    sections = _new_sections()
    errors = []
    with fh:
        try:
            for line_num, line in enumerate(fh, start=1):
                line = line.strip()
                if not line:
                    continue
                error = dispatch_line(line, sections, line_num, version)
                if error is not None:
                    errors.append(error)
        except OSError as e:
            errors.append(StatusFileError(f"error reading file: {e}"))

    status = _freeze(sections)
    debug(
        f"Parsed {path} (status-version {int(version)}): "
        f"{len(status.client_list)} client(s), "
        f"{len(status.routing_table)} route(s), {len(errors)} error(s)"
    )
    return status, errors
