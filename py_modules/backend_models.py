"""
Backend data models
Typed views of the JSON objects exchanged with the PowerTools backend,
the Steam client and the community settings store
"""
from dataclasses import dataclass, asdict, field
from typing import Dict, List, Optional, Any


@dataclass
class RangeLimit:
    """Inclusive bounds a hardware value may take"""
    min: Optional[int] = None
    max: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['RangeLimit']:
        if data is None:
            return None
        return cls(min=data.get('min'), max=data.get('max'))


@dataclass
class MinMax:
    """A min/max clock pair"""
    min: Optional[int] = None
    max: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CpuLimits:
    """Bounds of a single CPU core"""
    clock_min_limits: Optional[RangeLimit] = None
    clock_max_limits: Optional[RangeLimit] = None
    clock_step: int = 100
    governors: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CpuLimits':
        return cls(
            clock_min_limits=RangeLimit.from_dict(data.get('clock_min_limits')),
            clock_max_limits=RangeLimit.from_dict(data.get('clock_max_limits')),
            clock_step=data.get('clock_step', 100),
            governors=list(data.get('governors', [])),
        )


@dataclass
class CpusLimits:
    """Bounds of the CPU package"""
    cpus: List[CpuLimits] = field(default_factory=list)
    count: int = 0
    smt_capable: bool = False
    governors: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CpusLimits':
        cpus = [CpuLimits.from_dict(cpu) for cpu in data.get('cpus', [])]
        return cls(
            cpus=cpus,
            count=data.get('count', len(cpus)),
            smt_capable=data.get('smt_capable', False),
            governors=list(data.get('governors', [])),
        )


@dataclass
class GpuLimits:
    """Bounds of the integrated GPU"""
    fast_ppt_limits: Optional[RangeLimit] = None
    slow_ppt_limits: Optional[RangeLimit] = None
    ppt_step: int = 1
    tdp_limits: Optional[RangeLimit] = None
    tdp_boost_limits: Optional[RangeLimit] = None
    tdp_step: int = 1
    clock_min_limits: Optional[RangeLimit] = None
    clock_max_limits: Optional[RangeLimit] = None
    clock_step: int = 100
    memory_control_capable: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GpuLimits':
        return cls(
            fast_ppt_limits=RangeLimit.from_dict(data.get('fast_ppt_limits')),
            slow_ppt_limits=RangeLimit.from_dict(data.get('slow_ppt_limits')),
            ppt_step=data.get('ppt_step', 1),
            tdp_limits=RangeLimit.from_dict(data.get('tdp_limits')),
            tdp_boost_limits=RangeLimit.from_dict(data.get('tdp_boost_limits')),
            tdp_step=data.get('tdp_step', 1),
            clock_min_limits=RangeLimit.from_dict(data.get('clock_min_limits')),
            clock_max_limits=RangeLimit.from_dict(data.get('clock_max_limits')),
            clock_step=data.get('clock_step', 100),
            memory_control_capable=data.get('memory_control_capable', False),
        )


@dataclass
class BatteryLimits:
    """Bounds of the battery charger"""
    charge_current: Optional[RangeLimit] = None
    charge_current_step: int = 1
    charge_modes: List[str] = field(default_factory=list)
    charge_limit: Optional[RangeLimit] = None
    charge_limit_step: int = 1

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BatteryLimits':
        return cls(
            charge_current=RangeLimit.from_dict(data.get('charge_current')),
            charge_current_step=data.get('charge_current_step', 1),
            charge_modes=list(data.get('charge_modes', [])),
            charge_limit=RangeLimit.from_dict(data.get('charge_limit')),
            charge_limit_step=data.get('charge_limit_step', 1),
        )


@dataclass
class SettingsLimits:
    """Hardware-imposed bounds for every settings domain"""
    battery: BatteryLimits = field(default_factory=BatteryLimits)
    cpu: CpusLimits = field(default_factory=CpusLimits)
    gpu: GpuLimits = field(default_factory=GpuLimits)
    general: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SettingsLimits':
        return cls(
            battery=BatteryLimits.from_dict(data.get('battery', {})),
            cpu=CpusLimits.from_dict(data.get('cpu', {})),
            gpu=GpuLimits.from_dict(data.get('gpu', {})),
            general=dict(data.get('general', {})),
        )


@dataclass(frozen=True)
class VariantInfo:
    """One named, independently loadable settings profile"""
    id: int
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VariantInfo':
        return cls(id=int(data['id']), name=str(data.get('name', '')))


@dataclass
class Periodicals:
    """Cheap subset of live state polled on a timer"""
    battery_current: Optional[float] = None
    battery_charge_now: Optional[float] = None
    battery_charge_full: Optional[float] = None
    battery_charge_power: Optional[float] = None
    settings_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Periodicals':
        return cls(
            battery_current=data.get('battery_current'),
            battery_charge_now=data.get('battery_charge_now'),
            battery_charge_full=data.get('battery_charge_full'),
            battery_charge_power=data.get('battery_charge_power'),
            settings_path=data.get('settings_path'),
        )


@dataclass(frozen=True)
class StoreMetadata:
    """A community settings store entry"""
    id: str
    name: str
    steam_username: str
    tags: frozenset = frozenset()
    steam_app_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StoreMetadata':
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            steam_username=data.get('steam_username', ''),
            tags=frozenset(data.get('tags', [])),
            steam_app_id=data.get('steam_app_id'),
        )


@dataclass
class Message:
    """Developer message shown at the top of the panel"""
    id: Optional[int]
    title: str
    body: str
    url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Message':
        return cls(
            id=data.get('id'),
            title=data.get('title', ''),
            body=data.get('body', ''),
            url=data.get('url'),
        )


@dataclass
class AppLifetimeUpdate:
    """Steam app lifetime notification"""
    app_id: int
    instance_id: Optional[int] = None
    running: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppLifetimeUpdate':
        return cls(
            app_id=int(data.get('unAppID', 0)),
            instance_id=data.get('nInstanceID'),
            running=bool(data.get('bRunning', False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'unAppID': self.app_id, 'nInstanceID': self.instance_id, 'bRunning': self.running}


@dataclass
class AppOverview:
    """The pieces of Steam's app overview the router needs"""
    appid: int
    display_name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppOverview':
        return cls(appid=int(data['appid']), display_name=data.get('display_name', ''))


@dataclass
class LoginUser:
    account_name: str
    persona_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LoginUser':
        return cls(account_name=data.get('accountName', ''), persona_name=data.get('personaName') or None)

    @property
    def display_name(self) -> str:
        return self.persona_name if self.persona_name else self.account_name


@dataclass
class UserChange:
    account_name: str
    steam_id: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserChange':
        return cls(account_name=data.get('strAccountName', ''), steam_id=str(data.get('strSteamID', '')))
