"""RQ worker job: re-sync every stored cart after a catalog change."""
import logging
from flask import current_app, has_app_context
from redis.exceptions import LockError

from app import create_app, extensions
from app.services import cart_service, catalog_service

logger = logging.getLogger(__name__)

_worker_app = None

LOCK_KEY = "cart_sync:lock"


def _get_app():
    """Return an app instance for worker execution.

    Reuse the current app when already inside an app context (tests/CLI),
    otherwise lazily create the worker app once.
    """
    global _worker_app
    if has_app_context():
        return current_app._get_current_object()
    if _worker_app is None:
        _worker_app = create_app()
    return _worker_app


def sync_persisted_carts():
    """Reconcile all stored carts against one fresh catalog snapshot.

    Enqueued by every catalog write. Runs are serialized by a Redis lock so
    each one reloads the catalog after the previous run finished; a run that
    cannot get the lock raises and is retried by RQ.

    Returns the number of carts that changed.
    """
    app = _get_app()
    with app.app_context():
        lock = None
        if extensions.redis_client is not None:
            lock = extensions.redis_client.lock(LOCK_KEY, timeout=300)
            if not lock.acquire(blocking=True, blocking_timeout=60):
                raise RuntimeError("Cart sync lock is held by another run")

        try:
            products = catalog_service.load_all_products()
            if not products:
                logger.warning("Catalog is empty, skipping cart sync")
                return 0

            changed = 0
            session_ids = extensions.cart_storage.session_ids()
            for session_id in session_ids:
                try:
                    if cart_service.sync_session(session_id, products):
                        changed += 1
                except Exception:
                    logger.exception("Cart sync failed for session %s", session_id)

            logger.info("Cart sync: %d of %d carts updated", changed, len(session_ids))
            return changed

        finally:
            if lock is not None:
                try:
                    lock.release()
                except LockError:
                    logger.warning("Cart sync lock expired before release")
