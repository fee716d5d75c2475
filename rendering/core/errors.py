class RenderingError(Exception):
    pass

class ManifoldError(RenderingError, ValueError):
    """
    Malformed generator input: non-positive resolution or an empty control-point list.
    """
    pass

class MeshTopologyError(RenderingError, IndexError):
    """
    Index buffer does not fit its vertex buffer or its topology.
    Always a generator or welding bug, never recovered.
    """
    pass

class TextureIOError(RenderingError, OSError):
    pass
