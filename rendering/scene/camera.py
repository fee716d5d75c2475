import numpy as np
import pyrr as rr # type: ignore[import-untyped]

from rendering.core import transforms
from rendering.core.common_types import vec2i32, vec2f64, vec3f64, float4x4
from rendering.scene.raycasting import Ray

class Camera:
    def __init__(self, position: vec3f64, look_at: vec3f64, up: vec3f64, aspect_ratio: float, fov: float = 45.0, near: float = 0.01, far: float = 20.0) -> None:
        """
        fov is the vertical field of view in degrees, aspect_ratio is width / height.
        """
        self.look_from: rr.Vector3 = rr.Vector3(position, dtype=np.float64)
        self.look_at: rr.Vector3 = rr.Vector3(look_at, dtype=np.float64)
        self.view_up: rr.Vector3 = rr.Vector3(up, dtype=np.float64)
        self.aspect_ratio: float = aspect_ratio
        self.fov: float = fov
        self.near: float = near
        self.far: float = far

        self.base_projection: float4x4 = transforms.perspective(
            fov=np.radians(self.fov),
            aspect=self.aspect_ratio,
            near=self.near,
            far=self.far,
        )
        pass

    def get_view_matrix(self) -> float4x4:
        return transforms.look_at(
            eye=self.look_from,
            target=self.look_at,
            up=self.view_up,
        )

    def get_projection_matrix(self, jitter: vec2f64 = (0.0, 0.0), window_size: vec2i32 = (800, 600)) -> float4x4:
        """
        Projection with a sub-pixel offset, in pixels, used to jitter samples for anti-aliasing.
        """
        projection: float4x4 = self.base_projection.copy()

        jitter_x, jitter_y = jitter
        w, h = window_size

        jitter_clip_x: float = (jitter_x * 2.0) / w
        jitter_clip_y: float = (jitter_y * 2.0) / h

        projection[2][0] += jitter_clip_x
        projection[2][1] += jitter_clip_y

        return projection

    def get_basis_vectors(self) -> tuple[rr.Vector3, rr.Vector3, rr.Vector3]:
        cam_w: rr.Vector3 = rr.vector.normalize(self.look_from - self.look_at)
        cam_u: rr.Vector3 = rr.vector.normalize(rr.vector3.cross(self.view_up, cam_w))
        cam_v: rr.Vector3 = rr.vector3.cross(cam_w, cam_u)
        return cam_u, cam_v, cam_w

    def generate_ray(self, px: float, py: float, width: int, height: int, jitter: vec2f64 = (0.0, 0.0)) -> Ray:
        """
        World-space ray through pixel coordinates (px, py) of a width x height target.
        """
        return Ray.from_screen(
            px=px,
            py=py,
            width=width,
            height=height,
            inverse_view=transforms.inverse(self.get_view_matrix()),
            inverse_projection=transforms.inverse(self.get_projection_matrix(jitter=jitter, window_size=(width, height))),
            min_t=0.0,
            max_t=self.far,
        )

def get_halton_jitter(index: int, base: int) -> float:
    result: float = 0.0
    f: float = 1.0 / base
    i: int = index
    while i > 0:
        result += f * (i % base)
        i //= base
        f /= base
    return result
