"""Domain model shared by the document and store sides."""

from .objects import (
    AffineTransform,
    AnnotatedObject,
    Annotation,
    BooleanAnnotation,
    Channel,
    CommentAnnotation,
    Details,
    DoubleAnnotation,
    Ellipse,
    Image,
    Label,
    Line,
    LongAnnotation,
    MapAnnotation,
    Mask,
    ModelObject,
    Pixels,
    Plane,
    Point,
    Polygon,
    Polyline,
    Quantity,
    Rectangle,
    Roi,
    Shape,
    TagAnnotation,
    TermAnnotation,
    TimestampAnnotation,
    XmlAnnotation,
)
from .kinds import ObjectRole, KindInfo, kind_of, kind_named

__all__ = [
    "AffineTransform",
    "AnnotatedObject",
    "Annotation",
    "BooleanAnnotation",
    "Channel",
    "CommentAnnotation",
    "Details",
    "DoubleAnnotation",
    "Ellipse",
    "Image",
    "Label",
    "Line",
    "LongAnnotation",
    "MapAnnotation",
    "Mask",
    "ModelObject",
    "Pixels",
    "Plane",
    "Point",
    "Polygon",
    "Polyline",
    "Quantity",
    "Rectangle",
    "Roi",
    "Shape",
    "TagAnnotation",
    "TermAnnotation",
    "TimestampAnnotation",
    "XmlAnnotation",
    "ObjectRole",
    "KindInfo",
    "kind_of",
    "kind_named",
]
