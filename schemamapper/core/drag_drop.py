"""Drag & Drop Session — tracks one in-progress column drag.

State machine: idle -> dragging -> dropping -> idle. Starting a drag always
wins over whatever was in flight (last-start-wins). Hovering is a plain
assignment; validity is read from the set computed at drag start.

Every ``start_drag`` bumps a generation counter. A caller that awaits between
drop and cleanup passes the generation it started with to ``end_drag`` so a
drag started in the meantime is left alone.
"""

import logging
from typing import Iterable, Optional

from schemamapper.core.mapping_validation import MappingValidator, is_alias_duplicate
from schemamapper.core.models import (
    ColumnInfo,
    DragState,
    DropTarget,
    TargetKind,
    TargetVisualState,
)
from schemamapper.core.schema_document import SchemaDocument

logger = logging.getLogger(__name__)


class DragDropSession:
    """Drag state plus the drop targets it is validated against."""

    def __init__(
        self,
        document: Optional[SchemaDocument] = None,
        validator: Optional[MappingValidator] = None,
    ):
        self.document = document
        self.validator = validator or MappingValidator()
        self.available_targets: list[DropTarget] = []
        self.generation = 0
        self._clear_drag()

    def _clear_drag(self) -> None:
        self.dragged_column: Optional[ColumnInfo] = None
        self.drag_state = DragState.IDLE
        self.valid_target_paths: set[str] = set()
        self.hovered_target_path: Optional[str] = None

    # --- transitions ---

    def set_available_targets(self, targets: Iterable[DropTarget]) -> None:
        """Replace the target list; paths are unique, the last definition wins."""
        by_path: dict[str, DropTarget] = {}
        for target in targets:
            by_path[target.path] = target
        self.available_targets = list(by_path.values())

        if self.dragged_column is not None:
            self.valid_target_paths = self._compute_valid_paths(self.dragged_column)

    def start_drag(self, column: ColumnInfo) -> int:
        """Begin dragging ``column`` and return the drag generation."""
        self.generation += 1
        self.dragged_column = column
        self.drag_state = DragState.DRAGGING
        self.hovered_target_path = None
        self.valid_target_paths = self._compute_valid_paths(column)
        logger.debug(
            f"Drag {self.generation} started for column '{column.name}': "
            f"{len(self.valid_target_paths)}/{len(self.available_targets)} valid targets"
        )
        return self.generation

    def set_hovered_target(self, path: Optional[str]) -> None:
        if self.drag_state == DragState.IDLE:
            return
        self.hovered_target_path = path

    def set_drag_state(self, state: DragState) -> None:
        """Move along the state machine; unsupported transitions are ignored."""
        if state == self.drag_state:
            return
        if state == DragState.IDLE:
            self.end_drag()
        elif state == DragState.DROPPING and self.drag_state == DragState.DRAGGING:
            self.drag_state = DragState.DROPPING
            logger.debug(f"Drag {self.generation} dropping")
        elif state == DragState.DRAGGING and self.dragged_column is not None:
            self.drag_state = DragState.DRAGGING

    def end_drag(self, generation: Optional[int] = None) -> None:
        if generation is not None and generation != self.generation:
            logger.debug(f"Skipping end of drag {generation}; drag {self.generation} is active")
            return
        if self.drag_state != DragState.IDLE:
            logger.debug(f"Drag {self.generation} ended")
        self._clear_drag()

    def reset(self) -> None:
        self._clear_drag()
        self.available_targets = []

    # --- queries ---

    @property
    def is_dragging(self) -> bool:
        return self.drag_state == DragState.DRAGGING

    @property
    def is_dropping(self) -> bool:
        return self.drag_state == DragState.DROPPING

    @property
    def has_valid_targets(self) -> bool:
        return bool(self.valid_target_paths)

    @property
    def valid_targets(self) -> list[DropTarget]:
        return [t for t in self.available_targets if t.path in self.valid_target_paths]

    def get_target(self, path: str) -> Optional[DropTarget]:
        for target in self.available_targets:
            if target.path == path:
                return target
        return None

    def get_valid_targets_for_column(self, column: ColumnInfo) -> list[DropTarget]:
        """Targets ``column`` could be dropped on, without touching drag state."""
        return [
            t for t in self.available_targets
            if self.validator.validate(column, t).valid
        ]

    @property
    def is_current_hover_valid(self) -> bool:
        path = self.hovered_target_path
        if path is None or path not in self.valid_target_paths:
            return False

        target = self.get_target(path)
        if (
            target is not None
            and target.target_kind == TargetKind.ALIAS
            and self.document is not None
            and self.dragged_column is not None
        ):
            existing = self.document.get_aliases(target.language)
            return not is_alias_duplicate(self.dragged_column, existing)
        return True

    def target_feedback(self, target: DropTarget) -> TargetVisualState:
        """Drop-zone styling for ``target`` under the current drag."""
        if self.drag_state == DragState.IDLE:
            return TargetVisualState.NEUTRAL

        hovered = target.path == self.hovered_target_path
        if target.path in self.valid_target_paths:
            if hovered:
                if self.is_current_hover_valid:
                    return TargetVisualState.VALID_HOVER
                return TargetVisualState.INVALID_HOVER
            return TargetVisualState.VALID
        return TargetVisualState.INVALID_HOVER if hovered else TargetVisualState.INVALID

    def _compute_valid_paths(self, column: ColumnInfo) -> set[str]:
        return {t.path for t in self.get_valid_targets_for_column(column)}
