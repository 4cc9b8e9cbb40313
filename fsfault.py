"""
fsfault command line.

Validates fault configurations and lists what this platform can fault.

    fsfault check CONFIG         parse a config, report the fault table
    fsfault dump CONFIG [--json] print the fault table a session would get
    fsfault errors               list configurable error names
    fsfault operations           list interceptable operations
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from colorama import init, Fore, Style

from core.config import Config
from core.error_registry import iter_descriptors, unavailable_error_names
from core.errors import ConfigError
from core.fault_module import FaultModule, MODULE_VERSION
from core.fault_provider import FaultProvider
from core.logger import setup_logging
from core.operations import NEVER_INTERCEPTED
from core.structured_events import EventEmitter
from utils.error_messages import log_error


def load_module(config_path) -> FaultModule:
    """
    Build a FaultModule from a config file.

    Raises:
        ConfigError: If the file or any directive is invalid
    """
    config = Config(Path(config_path))
    events = EventEmitter(
        trace_level=config.trace_level,
        log_file=config.event_log,
        enable_file=config.event_log is not None,
    )
    module = FaultModule(events=events, mount_path=config.mount_path)
    module.configure(config)
    return module


def cmd_check(args) -> int:
    module = load_module(args.config)
    count = module.fault_table.count()
    engine = 'on' if module.engine else 'off'

    print(f"{Fore.GREEN}✓ {args.config}{Style.RESET_ALL} "
          f"{Style.DIM}engine:{Style.RESET_ALL} {Fore.CYAN}{engine}{Style.RESET_ALL} "
          f"{Style.DIM}faults:{Style.RESET_ALL} {Fore.CYAN}{count}{Style.RESET_ALL}")
    for line in module.fault_table.dump():
        print(line)

    if count and not module.engine:
        print(f"{Fore.YELLOW}⚠ FaultEngine is off; no faults will be injected{Style.RESET_ALL}")

    module.unload()
    return 0


def cmd_dump(args) -> int:
    module = load_module(args.config)

    if args.json:
        print(json.dumps({
            'version': MODULE_VERSION,
            'engine': bool(module.engine),
            'mount_path': module.mount_path,
            'faults': module.fault_table.to_dict(),
        }, indent=2))
    else:
        lines = module.dump_table()
        if not lines:
            print(f"{Style.DIM}(no faults configured){Style.RESET_ALL}")
        for line in lines:
            print(line)

    module.unload()
    return 0


def cmd_errors(args) -> int:
    for descriptor in iter_descriptors():
        print(f"  {Fore.WHITE}{descriptor.name:<12}{Style.RESET_ALL} "
              f"{descriptor.code:>4}  {Style.DIM}{descriptor.strerror}{Style.RESET_ALL}")

    missing = unavailable_error_names()
    if missing:
        print(f"{Fore.YELLOW}Not available on this platform: {', '.join(missing)}{Style.RESET_ALL}")
    return 0


def cmd_operations(args) -> int:
    for operation, binding in sorted(FaultProvider.intercepted_operations().items()):
        if operation == binding:
            print(f"  {Fore.WHITE}{operation}{Style.RESET_ALL}")
        else:
            print(f"  {Fore.WHITE}{operation}{Style.RESET_ALL} {Style.DIM}(uses '{binding}'){Style.RESET_ALL}")

    print(f"{Style.DIM}Never intercepted: {', '.join(NEVER_INTERCEPTED)}{Style.RESET_ALL}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='fsfault',
        description="Filesystem fault injection configuration tool.",
        epilog="Examples:\n"
               "  fsfault check faults.json\n"
               "  fsfault dump faults.json --json\n"
               "  fsfault errors",
        formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument('--log-folder', help='Write a log file to this directory')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log fault table bindings')

    commands = parser.add_subparsers(dest='command')
    commands.required = True

    check = commands.add_parser('check', help='Validate a config file')
    check.add_argument('config', help='Path to config.json')
    check.set_defaults(func=cmd_check)

    dump = commands.add_parser('dump', help='Print the configured fault table')
    dump.add_argument('config', help='Path to config.json')
    dump.add_argument('--json', action='store_true', help='Emit JSON')
    dump.set_defaults(func=cmd_dump)

    errors = commands.add_parser('errors', help='List configurable error names')
    errors.set_defaults(func=cmd_errors)

    operations = commands.add_parser('operations', help='List interceptable operations')
    operations.set_defaults(func=cmd_operations)

    return parser


def main(argv=None):
    """Main entry point for the fsfault command."""
    init()  # Initialize colorama

    args = build_parser().parse_args(argv)

    if args.log_folder:
        log_file = setup_logging(args.log_folder, level=logging.DEBUG if args.verbose else logging.INFO)
        logging.info(f"Log file: {log_file}")

    try:
        exit_code = args.func(args)
    except ConfigError as e:
        print(Fore.RED + f"{e}" + Style.RESET_ALL, file=sys.stderr)
        log_error("Configuration rejected", str(e).splitlines()[0],
                  "Fix the configuration and re-run `fsfault check`",
                  location=getattr(args, 'config', None))
        exit_code = 1

    sys.exit(exit_code)


if __name__ == '__main__':
    main()
