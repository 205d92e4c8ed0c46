"""
Wires the client pieces together the way the SOS screen uses them.
"""
import asyncio
import contextlib
from typing import Callable, List, Optional

import structlog

from silentaid.client.api import AlertDelivery, BackendClient, BackgroundDelivery, ContactSync
from silentaid.client.assembler import AlertAssembler, AlertRecord
from silentaid.client.location import DEFAULT_INTERVAL, LocationSampler, Position
from silentaid.client.storage import JsonFileStore, LocalContact, LocalStore, ProfileStore
from silentaid.client.trigger import HoldTrigger
from silentaid.config import get_settings

logger = structlog.get_logger(__name__)


class SOSClient:
    def __init__(
        self,
        store: LocalStore,
        delivery: AlertDelivery,
        contact_sync: Optional[ContactSync] = None,
        provider: Optional[Callable[[], Position]] = None,
        user_id: Optional[str] = None,
        **trigger_options,
    ):
        self.profiles = ProfileStore(store)
        self.contact_sync = contact_sync
        self.sampler = LocationSampler(self.profiles, provider)
        self.assembler = AlertAssembler(self.profiles, delivery, user_id=user_id or get_settings().demo_user_id)
        self.trigger = HoldTrigger(self._on_hold_complete, **trigger_options)
        self.alerts: List[AlertRecord] = []
        self._drive_task: Optional[asyncio.Task] = None
        self._sampler_task: Optional[asyncio.Task] = None
        self._stop: Optional[asyncio.Event] = None

    @classmethod
    def from_settings(cls, path: str, provider=None):
        settings = get_settings()
        backend = BackendClient(settings.backend_url)
        return cls(
            JsonFileStore(path),
            BackgroundDelivery(backend),
            contact_sync=ContactSync(backend, settings.demo_user_id),
            provider=provider,
            user_id=settings.demo_user_id,
        )

    def add_contact(self, name: str, phone: str, is_primary: bool = False) -> str:
        """Save locally, then copy to the server. Returns the status line to show."""
        contact: LocalContact = self.profiles.add_contact(name, phone, is_primary)
        if self.contact_sync is None:
            return "Contact saved locally ✔"
        return self.contact_sync.push(contact)

    def press(self) -> bool:
        """Begin a hold. Inside a running event loop the progress tick is scheduled too."""
        started = self.trigger.start()
        if started and (self._drive_task is None or self._drive_task.done()):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                # no event loop: the caller ticks the trigger itself
                return started
            self._drive_task = loop.create_task(self.trigger.drive())
        return started

    def release(self) -> bool:
        return self.trigger.cancel()

    async def start(self, interval: float = DEFAULT_INTERVAL):
        """Start periodic location sampling."""
        if self._sampler_task is None or self._sampler_task.done():
            self._stop = asyncio.Event()
            self._sampler_task = asyncio.create_task(self.sampler.run(interval, self._stop))

    async def stop(self):
        if self._stop is not None:
            self._stop.set()
        if self._sampler_task is not None:
            await self._sampler_task
        if self._drive_task is not None and not self._drive_task.done():
            self._drive_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._drive_task

    def _on_hold_complete(self):
        record = self.assembler.trigger_from_store()
        self.alerts.append(record)
        logger.info("sos_triggered", alert_id=record.id, summary=record.summary())
