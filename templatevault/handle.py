import logging
import threading

logger = logging.getLogger("TemplateVault")

from .db import TemplateVaultStore
from .errors import LockError, NotInitializedError, StoreError
from .paths import get_db_path


class StoreHandle:
    """Single owner of the live store, guarded by one exclusive lock.

    Starts Uninitialized. ``initialize()`` opens the database and ensures the
    schema exactly once; every other operation raises NotInitializedError
    until then. All operations, reads included, run one at a time.
    """

    _instance = None
    _instance_lock = threading.Lock()

    @classmethod
    def get(cls):
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def __init__(self):
        self._lock = threading.Lock()
        self._store = None
        self._poisoned = False

    def _acquire(self):
        self._lock.acquire()
        if self._poisoned:
            self._lock.release()
            raise LockError("Failed to lock database: a previous operation failed while holding it")

    def initialize(self, db_path=None):
        self._acquire()
        try:
            if self._store is not None:
                return False
            path = db_path or get_db_path()
            self._store = TemplateVaultStore(path)
            logger.info("Store handle ready: %s", path)
            return True
        finally:
            self._lock.release()

    @property
    def is_ready(self):
        return self._store is not None

    @property
    def db_path(self):
        store = self._store
        return store.db_path if store is not None else None

    def close(self):
        # Allowed on a poisoned gate; a later initialize() starts clean.
        self._lock.acquire()
        try:
            self._poisoned = False
            if self._store is None:
                return
            store, self._store = self._store, None
            store.close()
            logger.info("Store handle closed")
        finally:
            self._lock.release()

    def _run(self, op, *args, **kwargs):
        self._acquire()
        try:
            if self._store is None:
                raise NotInitializedError()
            return op(self._store, *args, **kwargs)
        except StoreError:
            raise
        except BaseException:
            self._poison()
            raise
        finally:
            self._lock.release()

    def _poison(self):
        # Called with the lock held.
        self._poisoned = True
        logger.warning("Store access gate poisoned by an unexpected failure")
        if self._store is not None and self._store.in_transaction:
            try:
                self._store.rollback()
            except StoreError:
                logger.warning("Rollback after failure did not succeed")

    # ── templates ──

    def upsert_template(self, template):
        return self._run(TemplateVaultStore.upsert_template, template)

    def batch_upsert_templates(self, templates):
        return self._run(TemplateVaultStore.batch_upsert_templates, list(templates))

    def get_all_templates(self):
        return self._run(TemplateVaultStore.get_all_templates)

    def get_template_by_id(self, tpl_id):
        return self._run(TemplateVaultStore.get_template_by_id, tpl_id)

    def delete_template(self, tpl_id):
        return self._run(TemplateVaultStore.delete_template, tpl_id)

    def toggle_template_favorite(self, tpl_id):
        return self._run(TemplateVaultStore.toggle_template_favorite, tpl_id)

    def search_templates(self, keyword):
        return self._run(TemplateVaultStore.search_templates, keyword)

    def get_all_diseases(self):
        return self._run(TemplateVaultStore.get_all_diseases)

    def get_all_template_types(self):
        return self._run(TemplateVaultStore.get_all_template_types)

    def clear_all_templates(self):
        return self._run(TemplateVaultStore.clear_all_templates)

    # ── tags ──

    def upsert_tag(self, tag):
        return self._run(TemplateVaultStore.upsert_tag, tag)

    def get_all_tags(self):
        return self._run(TemplateVaultStore.get_all_tags)

    def reset_tags(self, reseed=False):
        return self._run(TemplateVaultStore.reset_tags, reseed=reseed)

    def seed_default_tags(self):
        return self._run(TemplateVaultStore.seed_default_tags)

    # ── bundle / settings ──

    def export_bundle(self):
        return self._run(TemplateVaultStore.export_bundle)

    def get_settings(self):
        return self._run(TemplateVaultStore.get_settings)

    def set_settings(self, settings):
        return self._run(TemplateVaultStore.set_settings, settings)
