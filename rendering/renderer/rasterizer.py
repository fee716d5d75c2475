import typing
import numpy as np
import numpy.typing as npt

from rendering.core.common_types import Topology, float4, vec4f64
from rendering.core.texture import Texture2D
from rendering.core.vertex import Vertex
from rendering.scene.mesh import Mesh

@typing.runtime_checkable
class ProjectedVertex(typing.Protocol):
    """
    Vertex shader output. `homogeneous` is the clip-space position; add/scale interpolate every other field along with it.
    """
    homogeneous: float4

    def add(self, other: typing.Self) -> typing.Self: ...

    def scale(self, factor: float) -> typing.Self: ...

class Raster[V: Vertex, P: ProjectedVertex]:
    """
    Point and line rasterizer with user vertex and pixel shaders.
    There is no depth buffer: later samples overwrite earlier ones, so draw order decides visibility.
    """
    def __init__(self, width: int, height: int) -> None:
        self.render_target: Texture2D = Texture2D(width=width, height=height)
        self.vertex_shader: typing.Callable[[V], P] | None = None
        self.pixel_shader: typing.Callable[[P], npt.ArrayLike] | None = None
        pass

    def clear_rt(self, color: vec4f64 | float4) -> None:
        self.render_target.clear(color)

    def to_screen(self, homogeneous: float4) -> tuple[float, float] | None:
        """
        Perspective division and viewport mapping. None for vertices behind the eye (w <= 0).
        """
        w: float = float(homogeneous[3])
        if w <= 0.0:
            return None
        ndc_x: float = float(homogeneous[0]) / w
        ndc_y: float = float(homogeneous[1]) / w
        x: float = (ndc_x + 1.0) * 0.5 * self.render_target.width
        y: float = (1.0 - ndc_y) * 0.5 * self.render_target.height
        return x, y

    def write_sample(self, x: float, y: float, projected: P) -> None:
        px: int = int(np.floor(x))
        py: int = int(np.floor(y))
        if px < 0 or py < 0 or px >= self.render_target.width or py >= self.render_target.height:
            return
        color: npt.ArrayLike = self.pixel_shader(projected) if self.pixel_shader is not None else (1.0, 1.0, 1.0, 1.0)
        self.render_target.write(px, py, color)

    def draw_points(self, points: npt.ArrayLike, color: vec4f64 = (1.0, 1.0, 1.0, 1.0)) -> None:
        """
        Plots already projected points, (N, 3) in normalized device coordinates, with a constant color.
        """
        ndc: npt.NDArray[np.float64] = np.asarray(points, dtype=np.float64).reshape((-1, 3))
        xs: npt.NDArray[np.int64] = np.floor((ndc[:, 0] + 1.0) * 0.5 * self.render_target.width).astype(np.int64)
        ys: npt.NDArray[np.int64] = np.floor((1.0 - ndc[:, 1]) * 0.5 * self.render_target.height).astype(np.int64)
        inside: npt.NDArray[np.bool_] = (xs >= 0) & (ys >= 0) & (xs < self.render_target.width) & (ys < self.render_target.height)
        self.render_target.data[ys[inside], xs[inside]] = np.asarray(color, dtype=np.float64)

    def draw_line(self, a: P, b: P) -> None:
        start: tuple[float, float] | None = self.to_screen(a.homogeneous)
        end: tuple[float, float] | None = self.to_screen(b.homogeneous)
        if start is None or end is None:
            return
        dx: float = end[0] - start[0]
        dy: float = end[1] - start[1]
        steps: int = max(1, int(np.ceil(max(abs(dx), abs(dy)))))
        for step in range(steps + 1):
            alpha: float = step / steps
            projected: P = a.scale(1.0 - alpha).add(b.scale(alpha))
            self.write_sample(start[0] + dx * alpha, start[1] + dy * alpha, projected)

    def draw_mesh(self, mesh: Mesh[V]) -> None:
        if self.vertex_shader is None:
            raise ValueError("A vertex shader is required to draw a mesh")
        if mesh.topology == Topology.TRIANGLES:
            raise ValueError("Only points and lines can be rasterized, convert the mesh with convert_to(Topology.LINES)")

        projected: list[P] = [self.vertex_shader(vertex) for vertex in mesh.vertices]

        if mesh.topology == Topology.POINTS:
            for index in mesh.indices.tolist():
                screen: tuple[float, float] | None = self.to_screen(projected[index].homogeneous)
                if screen is not None:
                    self.write_sample(screen[0], screen[1], projected[index])
            return

        for a, b in mesh.primitives.tolist():
            self.draw_line(projected[a], projected[b])
