"""
CLI - command line interface
"""

import argparse
import sys
import logging
import threading
from typing import List, Optional

from .docker_api import DockerClient, DockerException, install_signal_handlers
from .docker_api.models import ContainerSpec
from .settings_manager import SettingsManager

logger = logging.getLogger(__name__)


class DockerCLI:
    """Docker client CLI interface"""

    def __init__(self, client: DockerClient, cancel: Optional[threading.Event] = None):
        self.client = client
        # Shared by every stream this process opens
        self.cancel = cancel if cancel is not None else threading.Event()

    def list_containers(self, all_containers: bool = False):
        """List containers"""
        containers = self.client.fetch_all_containers(all=all_containers)

        if not containers:
            logger.info("No containers found")
            return

        # Header
        print(f"{'NAME':<30} {'STATUS':<15} {'IMAGE':<40} {'ID':<15}")
        print("-" * 100)

        for c in containers:
            print(f"{c.name:<30} {c.state.status or '-':<15} {c.image:<40} {c.short_id:<15}")

        print(f"\nTotal: {len(containers)}")

    def inspect(self, name: str):
        """Show one container"""
        c = self.client.fetch_container(name)
        print(f"ID:       {c.id}")
        print(f"Name:     {c.name}")
        print(f"Image:    {c.image}")
        print(f"Running:  {c.state.running}")
        print(f"IP:       {c.network_settings.ip_address or '-'}")
        for port, bindings in sorted(c.network_settings.ports.items()):
            targets = ', '.join(f"{b.host_ip or '0.0.0.0'}:{b.host_port}" for b in bindings) or '-'
            print(f"Port:     {port} -> {targets}")

    def show_info(self):
        """Show daemon info"""
        info = self.client.info()
        print("Docker information:")
        print(f"  Server:     {info.server_version or 'Unknown'}")
        print(f"  Containers: {info.containers}")
        print(f"  Images:     {info.images}")
        print(f"  Driver:     {info.driver}")
        print(f"  Root Dir:   {info.root_path() or '-'}")
        print(f"  Kernel:     {info.kernel_version}")

    def pull(self, image: str):
        """Pull image"""
        self.client.pull_image(image)
        logger.info(f"✓ Image {image} pulled")

    def run(self, image: str, name: Optional[str] = None, command: Optional[List[str]] = None,
            publish: Optional[List[str]] = None):
        """Create and start container"""
        host_config = {}
        exposed = []
        for mapping in publish or []:
            host_port, _, container_port = mapping.rpartition(':')
            port_key = container_port if '/' in container_port else f"{container_port}/tcp"
            exposed.append(port_key)
            host_config.setdefault('PortBindings', {})[port_key] = [{'HostPort': host_port}]

        spec = ContainerSpec(image=image, name=name, cmd=command or None,
                             exposed_ports=exposed or None, host_config=host_config or None)
        container_id = self.client.run_container(spec)
        logger.info(f"✓ Container {name or container_id[:12]} started: {container_id[:12]}")

    def start(self, name: str):
        """Start container"""
        self.client.start_container(name)
        logger.info(f"✓ Container {name} started")

    def remove(self, name: str, force: bool = False, volumes: bool = False):
        """Remove container"""
        self.client.remove_container(name, force=force, volumes=volumes)
        logger.info(f"✓ Container {name} removed")

    def events(self):
        """Print daemon events until interrupted"""
        with self.client.events(cancel=self.cancel) as stream:
            for event in stream:
                print(f"{event.container_id[:12]:<15} {event.status}", flush=True)

    def logs(self, name: str, follow: bool = False, tail: int = -1, timestamps: bool = False):
        """Print container logs"""
        with self.client.container_logs(name, follow=follow, timestamps=timestamps,
                                        tail=tail, cancel=self.cancel) as stream:
            for line in stream:
                print(line, flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dockwire',
        description='dockwire - minimal Docker daemon client',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Usage examples:
  %(prog)s ps --all                                # List containers
  %(prog)s pull --image alpine:latest
  %(prog)s run --image alpine:latest --name demo --command sleep 60
  %(prog)s logs --name demo --follow --tail 10
  %(prog)s events                                  # Ctrl-C to stop
  %(prog)s rm --name demo --force
"""
    )

    parser.add_argument(
        'action',
        choices=['ps', 'inspect', 'info', 'pull', 'run', 'start', 'rm', 'events', 'logs'],
        help='Action'
    )

    parser.add_argument('--host', help='Daemon address, e.g. unix:///var/run/docker.sock or tcp://host:2375')
    parser.add_argument('--name', help='Container name or ID')
    parser.add_argument('--image', help='Image name')
    parser.add_argument('--command', nargs=argparse.REMAINDER, help='Command to run in the container')
    parser.add_argument('--publish', '-p', action='append', help='Port binding host_port:container_port')
    parser.add_argument('--all', action='store_true', help='Show all containers')
    parser.add_argument('--force', action='store_true', help='Force removal')
    parser.add_argument('--volumes', action='store_true', help='Remove anonymous volumes')
    parser.add_argument('--follow', '-f', action='store_true', help='Follow log output')
    parser.add_argument('--tail', type=int, default=None, help='Number of log lines (-1 for all)')
    parser.add_argument('--timestamps', action='store_true', help='Show timestamps')

    return parser


def run_cli(argv: Optional[List[str]] = None, settings: Optional[SettingsManager] = None) -> int:
    """Start CLI application"""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = settings or SettingsManager()
    logging.basicConfig(level=settings.get('log_level', 'INFO'), format='%(message)s')

    client = DockerClient(base_url=args.host or settings.docker_host(), timeout=settings.get('timeout'))
    cli = DockerCLI(client)

    try:
        if args.action == 'ps':
            cli.list_containers(all_containers=args.all)

        elif args.action == 'info':
            cli.show_info()

        elif args.action == 'pull':
            if not args.image:
                parser.error("pull requires --image")
            cli.pull(args.image)

        elif args.action == 'run':
            if not args.image:
                parser.error("run requires --image")
            cli.run(args.image, name=args.name, command=args.command, publish=args.publish)

        elif args.action in ('events', 'logs'):
            install_signal_handlers(cli.cancel)
            if args.action == 'events':
                cli.events()
            else:
                if not args.name:
                    parser.error("logs requires --name")
                tail = args.tail if args.tail is not None else settings.get('log_tail', -1)
                cli.logs(args.name, follow=args.follow, tail=tail, timestamps=args.timestamps)

        else:
            if not args.name:
                parser.error(f"{args.action} requires --name")
            if args.action == 'inspect':
                cli.inspect(args.name)
            elif args.action == 'start':
                cli.start(args.name)
            elif args.action == 'rm':
                cli.remove(args.name, force=args.force, volumes=args.volumes)

    except KeyboardInterrupt:
        logger.info("\n\nInterrupted by user")
        return 0
    except DockerException as e:
        logger.error(f"Error: {e}")
        return 1

    return 0


def main():
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
