from logging import debug, info
from pathlib import Path
from typing import NamedTuple

from ovpn_status_parser import ServerInfo, StatusVersion


class ConfigError(Exception):
    pass


class OpenVPNConfig(NamedTuple):
    id: str
    status_file: str
    status_version: StatusVersion = StatusVersion.V3
    local: str = ""
    port: str = "1194"
    proto: str = ""
    dev: str = ""

    def server_info(self):
        return ServerInfo(
            id=self.id,
            local=self.local,
            port=self.port,
            proto=self.proto,
            dev=self.dev,
        )


def server_id(status_path):
    # /var/log/openvpn/server1-status.log -> server1-status
    return Path(status_path).stem


class ConfigLoader:
    """Scans an OpenVPN server config for the directives describing its status file.

    Only ``local``, ``port``, ``proto``, ``dev``, ``status`` and
    ``status-version`` are read; everything else in the file is ignored.
    """

    def __init__(self, config_path):
        self.config_path = config_path
        self.settings = {
            "port": "1194",
            "status_version": StatusVersion.V3,
        }
        self.directives = {
            "local": self.parse_option,
            "port": self.parse_option,
            "proto": self.parse_option,
            "dev": self.parse_option,
            "status": self.parse_status,
            "status-version": self.parse_status_version,
        }

        try:
            with open(config_path, encoding="utf-8", errors="replace") as fh:
                info(f"Using config file: {config_path}")
                for line in fh:
                    self.parse_line(line)
        except OSError as e:
            raise ConfigError(f"failed to read config file: {e}") from e

        if "status_file" not in self.settings:
            raise ConfigError("no 'status' directive found in config file")

    def parse_line(self, line):
        line = line.strip()
        if not line or line.startswith(("#", ";")):
            return
        directive, *args = line.split()
        handler = self.directives.get(directive)
        if handler is not None and args:
            handler(directive, args)

    def parse_option(self, directive, args):
        self.settings[directive] = args[0]

    def parse_status(self, directive, args):
        # status <file> [seconds]; the refresh interval is not needed here
        self.settings["status_file"] = args[0]
        self.settings["id"] = server_id(args[0])

    def parse_status_version(self, directive, args):
        try:
            self.settings["status_version"] = StatusVersion(int(args[0]))
        except ValueError:
            debug(f"Ignoring unsupported status-version {args[0]!r}")

    @property
    def config(self):
        return OpenVPNConfig(**self.settings)


def load_config(config_path):
    return ConfigLoader(config_path).config
