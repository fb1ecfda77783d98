"""Database bootstrap -- the startup sequence for a Postgres-backed application.

``DatabaseService.on_bootstrap()`` runs these steps, strictly one after the other:

1. Check the Postgres server version.
2. Resolve the vector extension: check that it is available and that the
   available and installed versions are in the supported range, then
   create it, update it, or detect a downgrade.
3. Drop other vector extensions that are still installed.
4. Run migrations (unless ``skip_migrations``).
5. Rebuild vector indexes that are missing or stale.

A fatal error (see ``db_reconciler.errors``) stops the sequence and
propagates with its operator-facing message.  Dropping an unused extension
and reindexing are best effort: failures are logged as warnings.

Usage:
    from db_reconciler.factory import get_database_service

    service = get_database_service(schema=declared_schema)
    await service.on_bootstrap()
"""

import logging

from db_reconciler.adapters.base import DatabaseRepository, ExtensionVersion
from db_reconciler.constants import (
    VECTOR_EXTENSIONS,
    DatabaseExtension,
    VectorIndex,
    get_extension_name,
)
from db_reconciler.errors import (
    ExtensionCreateFailedError,
    ExtensionDowngradeDetectedError,
    ExtensionUnavailableError,
    ExtensionUpdateFailedError,
    ExtensionVersionIsNightlyError,
    ExtensionVersionOutOfRangeError,
    UnsupportedDatabaseVersionError,
)
from db_reconciler.versions import VersionStatus, get_version_status, parse_version

logger = logging.getLogger(__name__)

_REINDEX_TARGETS = [VectorIndex.CLIP, VectorIndex.FACE]


# ============================================================================
# Messages
# ============================================================================


def _unavailable_message(name: str) -> str:
    return (
        f"The {name} extension is not available in this Postgres instance.\n"
        "    If using a container image, ensure the image has the extension installed."
    )


def _nightly_message(name: str, extension: DatabaseExtension) -> str:
    return (
        f"The {name} extension version is 0.0.0, which means it is a nightly release.\n"
        f"    Please run 'DROP EXTENSION IF EXISTS {extension.value}' and switch to a release version."
    )


def _out_of_range_message(name: str, version: str, version_range: str) -> str:
    return (
        f"The {name} extension version is {version}, but Immich only supports {version_range}.\n"
        f"    Please change {name} to a compatible version in the Postgres instance."
    )


def _downgrade_message(name: str, installed: str, available: str) -> str:
    return (
        f"The database currently has {name} {installed} activated, but the Postgres instance "
        f"only has {available} available.\n"
        "    This most likely means the extension was downgraded.\n"
        f"    If {name} {installed} is compatible with Immich, please ensure the Postgres instance "
        "has this available."
    )


def _create_failed_message(name: str, extension: DatabaseExtension) -> str:
    return (
        f"Alert - The {name} extension is not installed and could not be created automatically.\n"
        "    Please run the following command as a superuser in the Postgres instance to create it:\n"
        f"    CREATE EXTENSION IF NOT EXISTS {extension.value} CASCADE;"
    )


def _update_failed_message(name: str, extension: DatabaseExtension, version: str) -> str:
    return (
        f"The {name} extension can be updated to {version}.\n"
        "    Immich attempted to update the extension, but failed to do so.\n"
        "    This may be because Immich does not have the necessary privileges to update the extension.\n"
        "    Please run the following command as a superuser to update it:\n"
        f"    ALTER EXTENSION {extension.value} UPDATE TO '{version}';"
    )


def _restart_message(name: str) -> str:
    return (
        f"The {name} extension has been updated and requires the Postgres instance to be restarted.\n"
        "    Please restart the Postgres instance to complete the update."
    )


def _drop_failed_message(extension: DatabaseExtension, error: Exception) -> str:
    return (
        f"The {get_extension_name(extension)} extension is no longer used and could not be removed ({error}).\n"
        "    Please run the following command as a superuser to remove it:\n"
        f"    DROP EXTENSION {extension.value};"
    )


# ============================================================================
# Service
# ============================================================================


class DatabaseService:
    """Runs the database startup sequence against a repository.

    Args:
        repository: Implementation of the ``DatabaseRepository`` primitives.
        skip_migrations: Skip migrations (and with them the reindex step).

    Example:
        service = DatabaseService(AsyncPostgresAdapter(url, schema=schema))
        await service.on_bootstrap()
    """

    def __init__(self, repository: DatabaseRepository, skip_migrations: bool = False):
        self.repository = repository
        self.skip_migrations = skip_migrations

    async def on_bootstrap(self) -> None:
        """Run the full bootstrap sequence.

        Raises:
            ReconcilerError: A fatal error; nothing after the failing step ran.
        """
        await self.check_postgres_version()
        await self.ensure_vector_extension()

        if self.skip_migrations:
            logger.info("Skipping migrations")
            return

        logger.info("Running migrations")
        await self.repository.run_migrations()

        try:
            await self.repository.reindex_vectors_if_needed(_REINDEX_TARGETS)
        except Exception as error:
            logger.warning(
                "Could not run vector reindexing checks. If the extension was updated, "
                "please restart the Postgres instance. (%s)",
                error,
            )

    async def check_postgres_version(self) -> None:
        version = await self.repository.get_postgres_version()
        version_range = self.repository.get_postgres_version_range()
        if get_version_status(version, version_range) != VersionStatus.IN_RANGE:
            raise UnsupportedDatabaseVersionError(
                f"Invalid PostgreSQL version. Found {version}, but needed {version_range}. "
                "Please use a supported version."
            )

    async def ensure_vector_extension(self) -> DatabaseExtension:
        """Create, update or verify the vector extension; drop unused ones.

        Returns:
            The active vector extension.
        """
        extension = await self.repository.get_vector_extension()
        name = get_extension_name(extension)
        version_range = self.repository.get_extension_version_range(extension)

        records = await self.repository.get_extension_versions(VECTOR_EXTENSIONS)
        record = next((item for item in records if item.name == extension), None)
        if record is None or record.available_version is None:
            raise ExtensionUnavailableError(_unavailable_message(name))

        available = record.available_version
        installed = record.installed_version

        self._check_version(extension, available, version_range)
        if installed is not None:
            self._check_version(extension, installed, version_range)

        if installed is None:
            await self._create_extension(extension)
        elif parse_version(installed) < parse_version(available):
            await self._update_extension(extension, available)
        elif parse_version(installed) > parse_version(available):
            raise ExtensionDowngradeDetectedError(_downgrade_message(name, installed, available))

        await self._drop_unused_extensions(extension, records)
        return extension

    @staticmethod
    def _check_version(extension: DatabaseExtension, version: str, version_range: str) -> None:
        name = get_extension_name(extension)
        status = get_version_status(version, version_range)
        if status == VersionStatus.NIGHTLY:
            raise ExtensionVersionIsNightlyError(_nightly_message(name, extension))
        if status != VersionStatus.IN_RANGE:
            raise ExtensionVersionOutOfRangeError(_out_of_range_message(name, version, version_range))

    async def _create_extension(self, extension: DatabaseExtension) -> None:
        logger.info("Creating %s extension", get_extension_name(extension))
        try:
            await self.repository.create_extension(extension)
        except Exception as error:
            logger.critical(_create_failed_message(get_extension_name(extension), extension))
            raise ExtensionCreateFailedError(str(error)) from error

    async def _update_extension(self, extension: DatabaseExtension, version: str) -> None:
        name = get_extension_name(extension)
        logger.info("Updating %s extension to %s", name, version)
        try:
            restart_required = await self.repository.update_vector_extension(extension, version)
        except Exception as error:
            logger.warning(_update_failed_message(name, extension, version))
            raise ExtensionUpdateFailedError(str(error)) from error

        if restart_required:
            logger.warning(_restart_message(name))

    async def _drop_unused_extensions(
        self,
        extension: DatabaseExtension,
        records: list[ExtensionVersion],
    ) -> None:
        for record in records:
            if record.name == extension or record.installed_version is None:
                continue
            # VectorChord depends on pgvector
            if extension == DatabaseExtension.VECTORCHORD and record.name == DatabaseExtension.VECTOR:
                continue

            logger.info("Dropping unused %s extension", get_extension_name(record.name))
            try:
                await self.repository.drop_extension(record.name)
            except Exception as error:
                logger.warning(_drop_failed_message(record.name, error))
