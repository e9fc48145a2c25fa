from __future__ import annotations


class UpgradeError(Exception):
    """Fatal condition that aborts the upgrade.

    `remediation` is operator-facing text explaining how to get unstuck.
    """

    remediation = ""

    def __init__(self, message: str, remediation: str | None = None):
        super().__init__(message)
        if remediation is not None:
            self.remediation = remediation


class PrivilegeError(UpgradeError):
    remediation = (
        "Please ensure your local user is in the docker group and run without sudo.\n"
        "   sudo usermod -aG docker $USER"
    )


class NotUpgradeable(UpgradeError):
    remediation = (
        "This means setup has never been run, or the installation is too old to be "
        "upgraded automatically. Run 'git pull', resolve any conflicts, then run the "
        "setup script to re-enter your credentials."
    )


class TemplateMissing(UpgradeError):
    remediation = "A packaged template is missing. Restore it with 'git checkout -- <file>' and re-run."


class ConfigSyncError(UpgradeError):
    remediation = "Resolve the git conflict in the stack directory and re-run the upgrade."


class StackError(UpgradeError):
    remediation = "Check that docker is running and that your user can reach it, then re-run."


class MigrationUnitFailure(UpgradeError):
    remediation = (
        "Completed migrations are recorded and will not run again. Fix the failing "
        "migration and re-run the upgrade to resume from it."
    )

    def __init__(self, unit: str, message: str):
        super().__init__(f"One-time migration '{unit}' failed: {message}")
        self.unit = unit


class HealthCheckTimeout(UpgradeError):
    remediation = "Check the service logs with 'docker logs <container>' and re-run once it is healthy."


class WaitCancelled(UpgradeError):
    remediation = "The upgrade was interrupted; re-run it to resume."


class HelperError(UpgradeError):
    remediation = "Run the helper script by hand to see its error, fix it, then re-run the upgrade."
