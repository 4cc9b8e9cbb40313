"""
fsfault Doctor - Diagnostic tool to check platform support and configuration.
Run this to see which errors and operations can be faulted on this host.
"""

import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from colorama import init, Fore, Style

init(autoreset=True)

TOTAL_CHECKS = 6


class FsfaultDoctor:
    """Diagnostic tool for fsfault setup."""

    def __init__(self, config_path=None, quiet=False):
        self.config_path = Path(config_path) if config_path else None
        self.quiet = quiet
        self.issues = []
        self.warnings = []
        self.passed = []

    def _out(self, text='', end='\n'):
        if not self.quiet:
            print(text, end=end)

    def _step(self, number, text):
        self._out(f"{Fore.YELLOW}[{number}/{TOTAL_CHECKS}]{Style.RESET_ALL} {text}...", end=" ")

    def print_header(self):
        """Print diagnostic header."""
        self._out(f"\n{Fore.CYAN}{'='*60}{Style.RESET_ALL}")
        self._out(f"{Fore.CYAN}fsfault Doctor - System Diagnostic{Style.RESET_ALL}")
        self._out(f"{Fore.CYAN}{'='*60}{Style.RESET_ALL}\n")

    def check_python_version(self):
        """Check Python version."""
        self._step(1, "Checking Python version")
        version = sys.version_info
        if version.major == 3 and version.minor >= 7:
            self._out(f"{Fore.GREEN}✓ Python {version.major}.{version.minor}.{version.micro}{Style.RESET_ALL}")
            self.passed.append("Python version")
        else:
            self._out(f"{Fore.RED}✗ Python {version.major}.{version.minor} (need 3.7+){Style.RESET_ALL}")
            self.issues.append("Python version too old")

    def check_dependencies(self):
        """Check required Python packages."""
        self._step(2, "Checking Python dependencies")
        required = ['psutil', 'colorama']
        missing = []

        for package in required:
            try:
                __import__(package)
            except ImportError:
                missing.append(package)

        if not missing:
            self._out(f"{Fore.GREEN}✓ All packages installed{Style.RESET_ALL}")
            self.passed.append("Python dependencies")
        else:
            self._out(f"{Fore.RED}✗ Missing: {', '.join(missing)}{Style.RESET_ALL}")
            self.issues.append(f"Missing packages: {', '.join(missing)}")
            self._out(f"  {Style.DIM}Fix: pip install {' '.join(missing)}{Style.RESET_ALL}")

    def check_config_file(self):
        """Check the config file parses and its directives are accepted."""
        self._step(3, "Checking configuration")

        if self.config_path is None:
            self._out(f"{Fore.YELLOW}⚠ No config given (skipped){Style.RESET_ALL}")
            self.warnings.append("No config file checked - pass --config to validate one")
            return

        from core.config import Config
        from core.errors import ConfigError
        from core.fault_module import FaultModule

        module = FaultModule()
        try:
            module.configure(Config(self.config_path))
        except ConfigError as e:
            self._out(f"{Fore.RED}✗ Invalid{Style.RESET_ALL}")
            self._out(f"  {Style.DIM}{e}{Style.RESET_ALL}")
            self.issues.append(f"Invalid config: {self.config_path}")
            return
        finally:
            fault_count = module.fault_table.count()
            engine = module.engine
            module.unload()

        self._out(f"{Fore.GREEN}✓ {fault_count} fault(s), engine {'on' if engine else 'off'}{Style.RESET_ALL}")
        self.passed.append("Config file")
        if fault_count and not engine:
            self.warnings.append("Faults are configured but FaultEngine is off - nothing will be injected")

    def check_error_names(self):
        """Check which extended error names this platform defines."""
        self._step(4, "Checking error names")
        from core.error_registry import supported_error_names, unavailable_error_names

        missing = unavailable_error_names()
        if not missing:
            self._out(f"{Fore.GREEN}✓ {len(supported_error_names())} error names available{Style.RESET_ALL}")
            self.passed.append("Error names")
        else:
            self._out(f"{Fore.YELLOW}⚠ Unavailable here: {', '.join(missing)}{Style.RESET_ALL}")
            self.warnings.append(f"Error names not defined on this platform: {', '.join(missing)}")

    def check_platform_calls(self):
        """Check optional primitives the real provider depends on."""
        self._step(5, "Checking platform calls")
        from core import fsio

        optional = {
            'pread': fsio.HAVE_PREAD,
            'pwrite': fsio.HAVE_PWRITE,
            'chroot': fsio.HAVE_CHROOT,
            'chown': fsio.HAVE_CHOWN,
            'lchown': fsio.HAVE_LCHOWN,
            'fchown': fsio.HAVE_FCHOWN,
            'fchmod': fsio.HAVE_FCHMOD,
        }
        missing = [name for name, present in optional.items() if not present]

        if not missing:
            self._out(f"{Fore.GREEN}✓ All calls available{Style.RESET_ALL}")
            self.passed.append("Platform calls")
        else:
            self._out(f"{Fore.YELLOW}⚠ Missing: {', '.join(missing)}{Style.RESET_ALL}")
            self.warnings.append(f"Calls fall back or fail with ENOSYS: {', '.join(missing)}")

        # Descriptor paths in fault traces come from psutil
        try:
            import psutil
            psutil.Process().open_files()
        except ImportError:
            pass
        except (psutil.AccessDenied, psutil.NoSuchProcess):
            self.warnings.append("Cannot list open files - fault traces may show 'None' paths")

    def check_log_directory(self):
        """Check log directory can be created."""
        self._step(6, "Checking log directory")
        log_dir = Path.cwd() / 'logs'

        try:
            log_dir.mkdir(exist_ok=True)
            self._out(f"{Fore.GREEN}✓ Log directory ready{Style.RESET_ALL}")
            self.passed.append("Log directory")
        except OSError as e:
            self._out(f"{Fore.RED}✗ Cannot create: {e}{Style.RESET_ALL}")
            self.issues.append("Cannot create log directory")

    def print_summary(self):
        """Print diagnostic summary."""
        self._out(f"\n{Fore.CYAN}{'='*60}{Style.RESET_ALL}")
        self._out(f"{Fore.CYAN}Summary{Style.RESET_ALL}")
        self._out(f"{Fore.CYAN}{'='*60}{Style.RESET_ALL}\n")

        self._out(f"{Fore.GREEN}✓ Passed:{Style.RESET_ALL} {len(self.passed)}")
        self._out(f"{Fore.YELLOW}⚠ Warnings:{Style.RESET_ALL} {len(self.warnings)}")
        self._out(f"{Fore.RED}✗ Issues:{Style.RESET_ALL} {len(self.issues)}")

        if self.warnings:
            self._out(f"\n{Fore.YELLOW}Warnings:{Style.RESET_ALL}")
            for w in self.warnings:
                self._out(f"  • {w}")

        if self.issues:
            self._out(f"\n{Fore.RED}Critical Issues:{Style.RESET_ALL}")
            for i in self.issues:
                self._out(f"  • {i}")
            self._out(f"\n{Fore.RED}Fix these issues before enabling fault injection!{Style.RESET_ALL}")
        else:
            self._out(f"\n{Fore.GREEN}{'='*60}{Style.RESET_ALL}")
            self._out(f"{Fore.GREEN}All checks passed! Ready to inject faults.{Style.RESET_ALL}")
            self._out(f"{Fore.GREEN}{'='*60}{Style.RESET_ALL}")

        self._out()

    def run(self):
        """Run all diagnostic checks."""
        self.print_header()

        self.check_python_version()
        self.check_dependencies()
        self.check_config_file()
        self.check_error_names()
        self.check_platform_calls()
        self.check_log_directory()

        self.print_summary()

        return 0 if not self.issues else 1

    def to_dict(self, exit_code=None):
        """Machine-readable result of the last run."""
        if self.issues:
            status = "blocked"
            actions = ["Fix the critical issues and re-run `fsfault-doctor`."]
        elif self.warnings:
            status = "ready_with_warnings"
            actions = ["Review warnings; affected faults may not behave as configured."]
        else:
            status = "ready"
            actions = []

        return {
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
            "exit_code": exit_code,
            "status": status,
            "counts": {
                "passed": len(self.passed),
                "warnings": len(self.warnings),
                "issues": len(self.issues),
            },
            "passed": self.passed,
            "warnings": self.warnings,
            "issues": self.issues,
            "recommended_actions": actions,
        }


def main():
    """Main entry point for fsfault-doctor command."""
    parser = argparse.ArgumentParser(description="Check fsfault platform support and configuration.")
    parser.add_argument('--config', '-c', help='Path to a config.json file to validate')
    parser.add_argument('--json', action='store_true', help='Emit the result as JSON')
    args = parser.parse_args()

    doctor = FsfaultDoctor(config_path=args.config, quiet=args.json)
    exit_code = doctor.run()

    if args.json:
        print(json.dumps(doctor.to_dict(exit_code=exit_code), indent=2))

    sys.exit(exit_code)


if __name__ == '__main__':
    main()
