from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .device import PartitionPlan, TargetDisk
from .mount_table import MountTable
from .profile import InstallationProfile


class Stage(Enum):
	Preflight = 'preflight'
	Disk = 'disk'
	Bootstrap = 'bootstrap'

	@classmethod
	def ordered(cls) -> list['Stage']:
		return [cls.Preflight, cls.Disk, cls.Bootstrap]

	def follows(self, other: 'Stage') -> bool:
		order = Stage.ordered()
		return order.index(self) > order.index(other)


@dataclass
class InstallContext:
	"""
	Everything the three stages share, passed explicitly from one stage
	to the next. The profile and target disk are fixed before the first
	destructive step; the plan and mount table are filled in by the
	disk sequencer.
	"""

	mountpoint: Path
	disk: TargetDisk
	profile: InstallationProfile
	plan: PartitionPlan | None = None
	mount_table: MountTable = field(default_factory=MountTable)
	completed: list[Stage] = field(default_factory=list)

	@property
	def swap_path(self) -> Path | None:
		if self.plan is not None:
			return self.plan.swap.dev_path
		return self.disk.partition_path(2)

	def mark_completed(self, stage: Stage) -> None:
		if stage not in self.completed:
			self.completed.append(stage)

	def is_completed(self, stage: Stage) -> bool:
		return stage in self.completed
