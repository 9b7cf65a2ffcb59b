"""
OpenClaw Server Setup - Provisioning Package

This package contains the modular components used to provision a fresh
Debian/Ubuntu server. Each module is responsible for one stage of the run.

License: MIT
Version: 1.0
"""

__version__ = "1.0"

from .app_installer import AppInstaller
from .ban_manager import BanManager
from .firewall_manager import FirewallManager, FirewallOrderingError
from .maintenance import MaintenanceConfigurator
from .package_manager import PackageManager
from .reporter import Reporter
from .run_state import HostPaths, RunContext, SetupOptions, SSHState
from .ssh_manager import SSHManager
from .steps import Step, StepResult, StepRunner
from .swap_manager import SwapManager
from .system_updates import SystemUpdater
from .user_manager import UserManager

# Module exports
__all__ = [
    'RunContext',
    'SetupOptions',
    'HostPaths',
    'SSHState',
    'Step',
    'StepResult',
    'StepRunner',
    'SystemUpdater',
    'PackageManager',
    'SwapManager',
    'UserManager',
    'SSHManager',
    'FirewallManager',
    'FirewallOrderingError',
    'BanManager',
    'MaintenanceConfigurator',
    'AppInstaller',
    'Reporter',
]
