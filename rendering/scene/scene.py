import typing
import numpy as np

from rendering.core import transforms
from rendering.core.common_types import float4x4
from rendering.core.vertex import TransformableAttribute
from rendering.scene.raycasting import Ray, Hit, RaycastGeometry

class SceneEntry[A, M]:
    def __init__(self, geometry: RaycastGeometry[A] | typing.Any, transform: float4x4, material: M | None = None) -> None:
        self.geometry: RaycastGeometry[A] | typing.Any = geometry
        self.transform: float4x4 = np.asarray(transform, dtype=np.float64)
        self.inverse_transform: float4x4 = transforms.inverse(self.transform)
        self.material: M | None = material
        pass

class RaycastContext:
    """
    Read-only description of one intersection handed to the raytracer callbacks.
    """
    def __init__(self, geometry_index: int, from_geometry_to_world: float4x4, from_world_to_geometry: float4x4, global_ray: Ray, t: float) -> None:
        self.geometry_index: int = geometry_index
        self.from_geometry_to_world: float4x4 = from_geometry_to_world
        self.from_world_to_geometry: float4x4 = from_world_to_geometry
        self.global_ray: Ray = global_ray
        self.t: float = t
        pass

    @property
    def position(self) -> np.ndarray:
        return self.global_ray.at(self.t)

class SceneHit(typing.NamedTuple):
    context: RaycastContext
    attribute: typing.Any
    material: typing.Any

def to_world(attribute: typing.Any, matrix: float4x4) -> typing.Any:
    """
    Attributes with a transform() method map themselves. Anything else, plain arrays included, is returned unchanged
    and callbacks map it through the context matrices when they need world space.
    """
    if isinstance(attribute, TransformableAttribute):
        return attribute.transform(matrix)
    return attribute

class Scene[A, M]:
    """
    Ordered list of (geometry, local-to-world transform, material) entries.
    An entry's position in the list is its geometry index; earlier entries win ties.
    """
    def __init__(self) -> None:
        self.entries: list[SceneEntry[A, M]] = []
        pass

    def add(self, geometry: RaycastGeometry[A] | typing.Any, transform: float4x4 | None = None, material: M | None = None) -> int:
        self.entries.append(SceneEntry(
            geometry=geometry,
            transform=transform if transform is not None else transforms.identity(),
            material=material,
        ))
        return len(self.entries) - 1

    def intersect_entry(self, index: int, ray: Ray) -> SceneHit | None:
        entry: SceneEntry[A, M] = self.entries[index]
        local_hit: Hit | None = entry.geometry.intersect(ray.transform(entry.inverse_transform))
        if local_hit is None:
            return None
        context: RaycastContext = RaycastContext(
            geometry_index=index,
            from_geometry_to_world=entry.transform,
            from_world_to_geometry=entry.inverse_transform,
            global_ray=ray,
            t=local_hit.t,
        )
        return SceneHit(context=context, attribute=to_world(local_hit.attribute, entry.transform), material=entry.material)

    def intersections(self, ray: Ray) -> typing.Iterator[SceneHit]:
        """
        Every entry the ray hits, in insertion order, each with its nearest hit.
        """
        for index, entry in enumerate(self.entries):
            if not hasattr(entry.geometry, "intersect"):
                continue
            hit: SceneHit | None = self.intersect_entry(index, ray)
            if hit is not None:
                yield hit

    def intersect(self, ray: Ray) -> SceneHit | None:
        nearest: SceneHit | None = None
        for hit in self.intersections(ray):
            if nearest is None or hit.context.t < nearest.context.t:
                nearest = hit
        return nearest

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> typing.Iterator[SceneEntry[A, M]]:
        return iter(self.entries)
