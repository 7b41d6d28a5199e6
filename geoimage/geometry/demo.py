"""Built-in demo model."""

from .types import Model, Primitive, PrimitiveKind, Unit


def demo_model(unit: Unit = Unit.CM) -> Model:
    """Four-primitive test object: a box with a cylinder on top, a pyramid and a sphere beside it."""
    return Model(
        primitives=(
            Primitive(
                kind=PrimitiveKind.BOX,
                position=(0, 0, 0),
                rotation=(0, 0, 0),
                scale=(40, 40, 40),
                color="#3b82f6",
            ),
            Primitive(
                kind=PrimitiveKind.CYLINDER,
                position=(0, 40, 0),
                rotation=(0, 0, 0),
                scale=(20, 40, 20),
                color="#10b981",
            ),
            Primitive(
                kind=PrimitiveKind.PYRAMID,
                position=(40, 0, 0),
                rotation=(0, 0, 1.57),
                scale=(30, 30, 30),
                color="#f59e0b",
            ),
            Primitive(
                kind=PrimitiveKind.SPHERE,
                position=(-40, 0, 0),
                rotation=(0, 0, 0),
                scale=(25, 25, 25),
                color="#ef4444",
            ),
        ),
        unit=unit,
    )
