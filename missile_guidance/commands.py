"""
Host commands issued by the guidance engine.

The engine never talks to the host directly; it appends commands to a
CommandBuffer and the tick's caller applies them. Missiles are addressed the
way the host enumerates them: (channel index, missile index within channel).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Union

from .physics import Vector3D

logger = logging.getLogger(__name__)

# Register on a variable-speed thruster that controls its thrust
THRUST_REGISTER = 2


@dataclass(frozen=True)
class SetAimPoint:
    """Steer a missile toward a world-space point."""
    channel: int
    missile: int
    point: Vector3D


@dataclass(frozen=True)
class SetActuatorRegister:
    """Write a register on one part of a missile."""
    channel: int
    missile: int
    part: int
    register: int
    value: float


@dataclass(frozen=True)
class Detonate:
    """Detonate a missile immediately."""
    channel: int
    missile: int


@dataclass(frozen=True)
class LogMessage:
    """Line for the host's script log."""
    text: str


@dataclass(frozen=True)
class HudMessage:
    """Line for the player's HUD."""
    text: str


HostCommand = Union[SetAimPoint, SetActuatorRegister, Detonate, LogMessage, HudMessage]


@dataclass
class CommandBuffer:
    """
    Ordered list of commands produced during one tick.

    Log and HUD lines are gated here, so callers need not check the
    verbosity flags themselves.

    Attributes:
        debug_log: Keep debug() lines (host log).
        hud_log: Keep hud() lines.
        commands: Commands in emission order.
    """
    debug_log: bool = False
    hud_log: bool = True
    commands: List[HostCommand] = field(default_factory=list)

    def aim(self, channel: int, missile: int, point: Vector3D) -> None:
        """Queue an aim point."""
        self.commands.append(SetAimPoint(channel, missile, point))

    def set_register(
        self,
        channel: int,
        missile: int,
        part: int,
        register: int,
        value: float
    ) -> None:
        """Queue a part register write."""
        self.commands.append(SetActuatorRegister(channel, missile, part, register, value))

    def detonate(self, channel: int, missile: int) -> None:
        """Queue a detonation."""
        self.commands.append(Detonate(channel, missile))

    def log(self, text: str) -> None:
        """Queue a host log line regardless of verbosity."""
        logger.info(text)
        self.commands.append(LogMessage(text))

    def debug(self, text: str) -> None:
        """Queue a host log line only when debug logging is enabled."""
        logger.debug(text)
        if self.debug_log:
            self.commands.append(LogMessage(text))

    def hud(self, text: str, force: bool = False) -> None:
        """Queue a HUD line when HUD logging is enabled (or forced)."""
        logger.info(text)
        if self.hud_log or force:
            self.commands.append(HudMessage(text))

    def of_type(self, command_type: type) -> List[HostCommand]:
        """Commands of one type, in order."""
        return [c for c in self.commands if isinstance(c, command_type)]
