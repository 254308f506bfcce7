"""
Docker API data shapes

Every record keeps the raw JSON in `attrs` for fields not modeled here.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Event:
    """Daemon state-change notification"""
    container_id: str
    status: str
    image: str = ''
    time: int = 0
    attrs: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Event':
        return cls(
            container_id=data.get('id', ''),
            status=data.get('status', ''),
            image=data.get('from', ''),
            time=data.get('time', 0),
            attrs=data,
        )


@dataclass
class Binding:
    host_ip: str = ''
    host_port: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Binding':
        return cls(host_ip=data.get('HostIp', ''), host_port=data.get('HostPort', ''))


def _parse_port_map(ports: Optional[Dict[str, Any]]) -> Dict[str, List[Binding]]:
    # The daemon sends null for exposed ports without a host binding
    if not isinstance(ports, dict):
        return {}
    return {
        port: [Binding.from_dict(b) for b in (bindings or [])]
        for port, bindings in ports.items()
    }


@dataclass
class NetworkSettings:
    ip_address: str = ''
    ports: Dict[str, List[Binding]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'NetworkSettings':
        data = data or {}
        return cls(
            ip_address=data.get('IPAddress', ''),
            ports=_parse_port_map(data.get('Ports')),
        )


@dataclass
class State:
    running: bool = False
    status: str = ''

    @classmethod
    def from_value(cls, value: Any) -> 'State':
        """Build from the inspect object or the list endpoint's state text"""
        if isinstance(value, dict):
            return cls(running=bool(value.get('Running', False)), status=value.get('Status', ''))
        if isinstance(value, str):
            return cls(running=(value == 'running'), status=value)
        return cls()


@dataclass
class ContainerConfig:
    image: str = ''
    attach_stdin: bool = False
    attach_stdout: bool = False
    attach_stderr: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ContainerConfig':
        data = data or {}
        return cls(
            image=data.get('Image', ''),
            attach_stdin=data.get('AttachStdin', False),
            attach_stdout=data.get('AttachStdout', False),
            attach_stderr=data.get('AttachStderr', False),
        )


@dataclass
class HostConfig:
    port_bindings: Dict[str, List[Binding]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'HostConfig':
        data = data or {}
        return cls(port_bindings=_parse_port_map(data.get('PortBindings')))


@dataclass
class Container:
    """Docker container record"""
    id: str
    name: str = ''
    network_settings: NetworkSettings = field(default_factory=NetworkSettings)
    state: State = field(default_factory=State)
    config: ContainerConfig = field(default_factory=ContainerConfig)
    host_config: HostConfig = field(default_factory=HostConfig)
    attrs: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def short_id(self) -> str:
        return self.id[:12]

    @property
    def image(self) -> str:
        # List entries carry the image at the top level
        return self.config.image or self.attrs.get('Image', '')

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Container':
        name = data.get('Name') or (data.get('Names') or [''])[0]
        return cls(
            id=data.get('Id', ''),
            name=name.lstrip('/'),
            network_settings=NetworkSettings.from_dict(data.get('NetworkSettings')),
            state=State.from_value(data.get('State')),
            config=ContainerConfig.from_dict(data.get('Config')),
            host_config=HostConfig.from_dict(data.get('HostConfig')),
            attrs=data,
        )


@dataclass
class DaemonInfo:
    """Docker system info"""
    containers: int = 0
    images: int = 0
    debug: Any = False
    driver: str = ''
    driver_status: List[List[str]] = field(default_factory=list)
    execution_driver: str = ''
    ipv4_forwarding: Any = False
    index_server_address: str = ''
    init_path: str = ''
    init_sha1: str = ''
    kernel_version: str = ''
    memory_limit: Any = False
    n_events_listener: int = 0
    n_fd: int = 0
    n_goroutines: int = 0
    sockets: List[str] = field(default_factory=list)
    swap_limit: Any = False
    server_version: str = ''
    attrs: Dict[str, Any] = field(default_factory=dict, repr=False)

    def root_path(self) -> str:
        """Storage driver root directory, or '' when the driver does not report one"""
        for entry in self.driver_status:
            if len(entry) >= 2 and entry[0] == 'Root Dir':
                return entry[1]
        return ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DaemonInfo':
        return cls(
            containers=data.get('Containers', 0),
            images=data.get('Images', 0),
            debug=data.get('Debug', False),
            driver=data.get('Driver', ''),
            driver_status=data.get('DriverStatus') or [],
            execution_driver=data.get('ExecutionDriver', ''),
            ipv4_forwarding=data.get('IPv4Forwarding', False),
            index_server_address=data.get('IndexServerAddress', ''),
            init_path=data.get('InitPath', ''),
            init_sha1=data.get('InitSha1', ''),
            kernel_version=data.get('KernelVersion', ''),
            memory_limit=data.get('MemoryLimit', False),
            n_events_listener=data.get('NEventsListener', 0),
            n_fd=data.get('NFd', 0),
            n_goroutines=data.get('NGoroutines', 0),
            sockets=data.get('Sockets') or [],
            swap_limit=data.get('SwapLimit', False),
            server_version=data.get('ServerVersion', ''),
            attrs=data,
        )


@dataclass
class ContainerSpec:
    """
    Body of a container create request

    Args:
        image: Image name or ID
        name: Container name, sent as a query parameter
        cmd: Command to run
        env: Environment variables
        exposed_ports: Container ports to expose, e.g. ['80/tcp']
        host_config: HostConfig object passed through to create and start
        extra: Additional top-level fields merged into the body
    """
    image: str
    name: Optional[str] = None
    cmd: Optional[List[str]] = None
    env: Optional[Dict[str, str]] = None
    exposed_ports: Optional[List[str]] = None
    host_config: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Build the daemon's JSON body (including Name when set)"""
        config: Dict[str, Any] = {'Image': self.image}

        if self.name:
            config['Name'] = self.name
        if self.cmd:
            config['Cmd'] = list(self.cmd)
        if self.env:
            config['Env'] = [f"{k}={v}" for k, v in self.env.items()]
        if self.exposed_ports:
            config['ExposedPorts'] = {port: {} for port in self.exposed_ports}
        if self.host_config:
            config['HostConfig'] = dict(self.host_config)

        config.update(self.extra)
        return config
