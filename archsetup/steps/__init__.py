from .step_00_preflight import PreflightStep
from .step_10_partition import PartitionStep
from .step_20_format_root import FormatRootStep
from .step_30_bootstrap import BootstrapStep
from .step_35_fstab import FstabStep
from .step_40_identity import IdentityStep
from .step_45_locale import LocaleStep
from .step_50_initramfs import InitramfsStep
from .step_55_bootloader import BootloaderStep
from .step_60_network import NetworkStep
from .step_65_boot_entries import BootEntriesStep
from .step_70_users import UsersStep
from .step_75_first_boot import FirstBootStep
from .step_80_passwords import PasswordsStep
from .step_90_teardown import TeardownStep

__all__ = [
    "PreflightStep",
    "PartitionStep",
    "FormatRootStep",
    "BootstrapStep",
    "FstabStep",
    "IdentityStep",
    "LocaleStep",
    "InitramfsStep",
    "BootloaderStep",
    "NetworkStep",
    "BootEntriesStep",
    "UsersStep",
    "FirstBootStep",
    "PasswordsStep",
    "TeardownStep",
]
