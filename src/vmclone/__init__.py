"""vmclone - clone an Azure VM from a snapshot of its OS disk

Philosophy:
- Never touch the source VM
- Every created resource is tracked and rolled back on failure
- Delegate authentication to the az CLI
- Fail fast with helpful guidance

vmclone snapshots a running VM's OS disk, builds a managed disk, NIC,
NSG and boot-diagnostics storage around it, and deploys a new VM.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
