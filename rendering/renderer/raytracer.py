import typing
import numpy as np
import numpy.typing as npt

from rendering.core import config
from rendering.core import transforms
from rendering.core.common_types import HitResult, float3
from rendering.core.logging_config import get_logger
from rendering.core.texture import Texture2D
from rendering.scene.camera import Camera, get_halton_jitter
from rendering.scene.raycasting import Ray
from rendering.scene.scene import Scene, SceneHit, RaycastContext

logger = get_logger(__name__)

type ClosestHitCallback[P, A, M] = typing.Callable[[RaycastContext, A, M | None, P], None]
type AnyHitCallback[P, A, M] = typing.Callable[[RaycastContext, A, M | None, P], HitResult]
type MissCallback[P] = typing.Callable[[RaycastContext, P], None]

class Raytracer[P, A, M]:
    """
    Trace engine generic over the payload P, the hit attribute A and the material M.

    trace() visits every scene entry in insertion order. Each hit goes through on_any_hit when it is set:
    DISCARD ignores the hit, CONTINUE keeps it and goes on, STOP keeps it and ends the scan.
    The nearest kept hit is then handed to on_closest_hit, or on_miss runs when none was kept.
    Callbacks may trace again (shadows, reflections); recursion depth is the caller's business.
    """
    def __init__(
        self,
        on_closest_hit: ClosestHitCallback[P, A, M] | None = None,
        on_any_hit: AnyHitCallback[P, A, M] | None = None,
        on_miss: MissCallback[P] | None = None,
    ) -> None:
        self.on_closest_hit: ClosestHitCallback[P, A, M] | None = on_closest_hit
        self.on_any_hit: AnyHitCallback[P, A, M] | None = on_any_hit
        self.on_miss: MissCallback[P] | None = on_miss
        pass

    def trace(self, scene: Scene[A, M], ray: Ray, payload: P) -> P:
        closest: SceneHit | None = None

        for hit in scene.intersections(ray):
            result: HitResult = HitResult.CONTINUE
            if self.on_any_hit is not None:
                result = self.on_any_hit(hit.context, hit.attribute, hit.material, payload)
            if result == HitResult.DISCARD:
                continue
            if closest is None or hit.context.t < closest.context.t:
                closest = hit
            if result == HitResult.STOP:
                break

        if closest is not None:
            if self.on_closest_hit is not None:
                self.on_closest_hit(closest.context, closest.attribute, closest.material, payload)
        elif self.on_miss is not None:
            miss_context: RaycastContext = RaycastContext(
                geometry_index=-1,
                from_geometry_to_world=transforms.identity(),
                from_world_to_geometry=transforms.identity(),
                global_ray=ray,
                t=ray.max_t,
            )
            self.on_miss(miss_context, payload)

        return payload

    def render(
        self,
        scene: Scene[A, M],
        camera: Camera,
        target: Texture2D,
        payload_factory: typing.Callable[[], P],
        resolve: typing.Callable[[P], npt.ArrayLike],
        samples: int = 1,
    ) -> Texture2D:
        """
        Traces `samples` rays per pixel of `target` through the camera and writes the average of resolve(payload).
        Extra samples are spread over the pixel with a Halton (2, 3) jitter.
        """
        width: int = target.width
        height: int = target.height
        total: int = width * height
        view_inverse = transforms.inverse(camera.get_view_matrix())
        projection_inverses = [
            transforms.inverse(camera.get_projection_matrix(
                jitter=(get_halton_jitter(index + 1, 2) - 0.5, get_halton_jitter(index + 1, 3) - 0.5) if samples > 1 else (0.0, 0.0),
                window_size=(width, height),
            ))
            for index in range(samples)
        ]

        logger.info(f"Rendering {width}x{height} with {samples} sample(s) per pixel over {len(scene)} scene entries")
        for py in range(height):
            for px in range(width):
                accumulated: npt.NDArray[np.float64] = np.zeros(4, dtype=np.float64)
                for projection_inverse in projection_inverses:
                    ray: Ray = Ray.from_screen(px + 0.5, py + 0.5, width, height, view_inverse, projection_inverse, 0.0, camera.far)
                    color: npt.NDArray[np.float64] = np.asarray(resolve(self.trace(scene, ray, payload_factory())), dtype=np.float64)
                    if color.shape[0] == 3:
                        color = np.append(color, 1.0)
                    accumulated += color
                target.write(px, py, accumulated / samples)

                progress: int = py * width + px + 1
                if progress % config.PROGRESS_INTERVAL == 0:
                    logger.info(f"{progress * 100.0 / total:.1f}%")

        logger.info("Render done")
        return target

def offset_ray(position: float3, normal: float3, direction: float3, max_t: float = np.inf) -> Ray:
    """
    Secondary ray leaving a surface, pushed SURFACE_OFFSET along the side of the normal it travels to
    so it does not hit the surface it starts on.
    """
    side: float = 1.0 if float(np.dot(normal, direction)) >= 0.0 else -1.0
    return Ray.from_direction(position + normal * (config.SURFACE_OFFSET * side), direction, 0.0, max_t)
