"""
Per-command, per-user cooldowns.
"""
import asyncio
from dataclasses import dataclass
from typing import Dict, Tuple

from drivebot.utils.clock import Clock, epoch_millis

DEFAULT_COOLDOWN_MS = 3000

CooldownKey = Tuple[str, str]


@dataclass(frozen=True)
class CooldownDecision:
    allowed: bool
    remaining_ms: int = 0
    
    @property
    def remaining_seconds(self) -> float:
        return round(self.remaining_ms / 1000, 1)


class CooldownGate:
    """
    Tracks when each (command, user) pair may run again.
    
    check_and_record never awaits, so two racing interactions always
    see each other's timestamps.
    """
    
    def __init__(self, clock: Clock = epoch_millis):
        self.clock = clock
        self._expiries: Dict[CooldownKey, int] = {}
        self._timers: Dict[CooldownKey, asyncio.TimerHandle] = {}
    
    def check_and_record(self, command: str, user_id: str, window_ms: int = DEFAULT_COOLDOWN_MS) -> CooldownDecision:
        """
        Allow and start a new window, or deny with the time left.
        
        A denied attempt leaves the running window untouched.
        """
        key = (command, user_id)
        now = self.clock()
        
        expiry = self._expiries.get(key)
        if expiry is not None:
            if now < expiry:
                return CooldownDecision(allowed=False, remaining_ms=expiry - now)
            self._forget(key)
        
        expiry = now + window_ms
        self._expiries[key] = expiry
        self._schedule_expiry(key, expiry, window_ms)
        return CooldownDecision(allowed=True)
    
    def active_count(self) -> int:
        now = self.clock()
        return sum(1 for expiry in self._expiries.values() if expiry > now)
    
    def _schedule_expiry(self, key: CooldownKey, expiry: int, window_ms: int) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop (sync callers): stale entries are dropped on the next check
            return
        self._timers[key] = loop.call_later(window_ms / 1000, self._expire, key, expiry)
    
    def _expire(self, key: CooldownKey, expiry: int) -> None:
        if self._expiries.get(key) == expiry:
            del self._expiries[key]
            self._timers.pop(key, None)
    
    def _forget(self, key: CooldownKey) -> None:
        self._expiries.pop(key, None)
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
