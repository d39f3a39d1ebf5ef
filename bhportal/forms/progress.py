"""
Progress indicator shown above every wizard step
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

STEP_COMPLETED = 'completed'
STEP_CURRENT = 'current'
STEP_PENDING = 'pending'


@dataclass(frozen=True)
class ProgressIndicator:
    """Read-only view of ``(current_step, total_steps, labels)``"""

    current_step: int
    total_steps: int
    labels: Tuple[str, ...]

    def __post_init__(self):
        if self.total_steps < 1 or not 1 <= self.current_step <= self.total_steps:
            raise ValueError(f"Step {self.current_step} is outside 1..{self.total_steps}")
        if len(self.labels) != self.total_steps:
            raise ValueError(f"Expected {self.total_steps} step labels, got {len(self.labels)}")
        object.__setattr__(self, 'labels', tuple(self.labels))

    @property
    def current_label(self) -> str:
        return self.labels[self.current_step - 1]

    @property
    def percentage(self) -> int:
        return round(self.current_step / self.total_steps * 100)

    @property
    def caption(self) -> str:
        return f"Step {self.current_step} of {self.total_steps}: {self.current_label}"

    @property
    def is_first(self) -> bool:
        return self.current_step == 1

    @property
    def is_last(self) -> bool:
        return self.current_step == self.total_steps

    def step_statuses(self) -> List[Dict[str, Any]]:
        statuses = []
        for number, label in enumerate(self.labels, start=1):
            if number < self.current_step:
                status = STEP_COMPLETED
            elif number == self.current_step:
                status = STEP_CURRENT
            else:
                status = STEP_PENDING
            statuses.append({'number': number, 'label': label, 'status': status})
        return statuses

    def to_dict(self) -> Dict[str, Any]:
        return {
            'currentStep': self.current_step,
            'totalSteps': self.total_steps,
            'currentLabel': self.current_label,
            'percentage': self.percentage,
            'caption': self.caption,
            'steps': self.step_statuses(),
        }
