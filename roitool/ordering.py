# roitool/ordering.py
"""Export-time ROI ordering and mask filtering.

A viewer may store the order in which it lists ROIs as an XML annotation in
the ``glencoesoftware.com/pathviewer/roidisplayorder`` namespace.  Its body
is JSON::

    {"displayorder": [30, 10, 99]}

where each number is the id of an ROI's *first* shape.  When present the
export follows that order, leaving a ``None`` gap for ids that match
nothing.  Otherwise ROIs keep their store order.  Either way an ROI whose
first shape is a mask is never exported.
"""

from __future__ import annotations

import json
from typing import Iterable, Optional, Sequence

from roitool.config import PATHVIEWER_DISPLAY_ORDER_NS
from roitool.errors import DisplayOrderError
from roitool.model.objects import Annotation, Mask, Roi, XmlAnnotation
from roitool.utils.logging import get_logger

logger = get_logger(__name__)


def find_display_order(
    annotations: Iterable[Annotation],
    namespace: str = PATHVIEWER_DISPLAY_ORDER_NS,
) -> Optional[list[int]]:
    """Return the shape ids of the first display-order annotation, if any.

    Raises
    ------
    DisplayOrderError
        If the matching annotation's body is not a JSON object with a
        ``displayorder`` list of integers.
    """
    for annotation in annotations:
        if not isinstance(annotation, XmlAnnotation) or annotation.namespace != namespace:
            continue
        logger.debug("Found display order annotation %s", annotation.id)
        try:
            body = json.loads(annotation.text_value or "")
        except json.JSONDecodeError as exc:
            raise DisplayOrderError(
                f"Display order annotation {annotation.id} is not valid JSON: {exc}"
            ) from exc
        order = body.get("displayorder") if isinstance(body, dict) else None
        if not isinstance(order, list) or not all(
            isinstance(i, int) and not isinstance(i, bool) for i in order
        ):
            raise DisplayOrderError(
                f"Display order annotation {annotation.id} has no displayorder list of ids"
            )
        return order
    return None


def is_mask_roi(roi: Roi) -> bool:
    """True when the ROI's first shape is a mask; shapeless ROIs never are."""
    return isinstance(roi.first_shape(), Mask)


def _roi_by_first_shape(rois: Sequence[Roi], shape_id: int) -> Optional[Roi]:
    for roi in rois:
        first = roi.first_shape()
        if first is not None and first.id == shape_id:
            return roi
    return None


def order_rois(
    rois: Sequence[Roi],
    annotations: Iterable[Annotation],
    namespace: str = PATHVIEWER_DISPLAY_ORDER_NS,
) -> list[Optional[Roi]]:
    """Order and filter *rois* for export."""
    display_order = find_display_order(annotations, namespace)
    if display_order is None:
        ordered: list[Optional[Roi]] = [roi for roi in rois if not is_mask_roi(roi)]
        logger.info("No display order found; exporting %d of %d ROIs", len(ordered), len(rois))
        return ordered

    ordered = []
    for shape_id in display_order:
        roi = _roi_by_first_shape(rois, shape_id)
        if roi is None:
            logger.debug("No ROI whose first shape is %d", shape_id)
            ordered.append(None)
        elif not is_mask_roi(roi):
            ordered.append(roi)
    logger.info(
        "Display order lists %d shapes; exporting %d ROIs",
        len(display_order),
        sum(1 for roi in ordered if roi is not None),
    )
    return ordered
