"""
SourceMesh -> RenderMesh adapter.

Copies vertices and per-face normals through unchanged and narrows the face
vertex references to the index type the renderer stores triangles with.
References that do not fit are reported, never truncated.
"""

from dataclasses import dataclass

import numpy as np
import trimesh

from stl_reader import SourceMesh, StlViewerError

# Open3D stores triangles as Vector3iVector (int32)
DEFAULT_INDEX_DTYPE = np.int32

NORMAL_TOLERANCE_DEG = 30.0


class ConversionError(StlViewerError):
    pass


class IndexOverflow(ConversionError):
    def __init__(self, face_index: int, vertex_index: int, max_value: int):
        self.face_index = face_index
        self.vertex_index = vertex_index
        self.max_value = max_value
        super().__init__(
            f"Face {face_index} references vertex {vertex_index}, "
            f"which exceeds the maximum index {max_value}"
        )


class DanglingIndex(ConversionError):
    def __init__(self, face_index: int, vertex_index: int, vertex_count: int):
        self.face_index = face_index
        self.vertex_index = vertex_index
        self.vertex_count = vertex_count
        super().__init__(
            f"Face {face_index} references vertex {vertex_index}, "
            f"but the mesh only has {vertex_count} vertices"
        )


@dataclass
class RenderMesh:
    positions: np.ndarray
    faces: np.ndarray
    normals: np.ndarray
    per_face_normals: bool = True
    textured: bool = False


def _first_offender(bad: np.ndarray):
    face_index, corner = np.argwhere(bad)[0]
    return int(face_index), int(corner)


####################################
# Conversion
####################################
def convert(source: SourceMesh, index_dtype=DEFAULT_INDEX_DTYPE) -> RenderMesh:
    """
    Convert a parsed mesh into the buffers the viewer uploads.

    Vertex i of the source stays vertex i of the output, since faces refer to
    vertices by position. Raises IndexOverflow if a face references a vertex
    beyond what ``index_dtype`` can hold, and DanglingIndex if the reference
    fits but points past the end of the vertex list.
    """
    limits = np.iinfo(index_dtype)
    positions = np.array(source.vertices, dtype=np.float32).reshape(-1, 3)
    faces = np.asarray(source.faces).reshape(-1, 3)
    normals = np.array(source.normals, dtype=np.float32).reshape(-1, 3)

    if len(normals) != len(faces):
        raise ConversionError(
            f"Got {len(normals)} normals for {len(faces)} faces"
        )

    if faces.size:
        too_wide = (faces > limits.max) | (faces < limits.min)
        if too_wide.any():
            face_index, corner = _first_offender(too_wide)
            raise IndexOverflow(
                face_index=face_index,
                vertex_index=int(faces[face_index, corner]),
                max_value=int(limits.max),
            )

        dangling = (faces < 0) | (faces >= len(positions))
        if dangling.any():
            face_index, corner = _first_offender(dangling)
            raise DanglingIndex(
                face_index=face_index,
                vertex_index=int(faces[face_index, corner]),
                vertex_count=len(positions),
            )

    return RenderMesh(
        positions=positions,
        faces=faces.astype(index_dtype),
        normals=normals,
    )


####################################
# Normal sanity check
####################################
def misaligned_normals(render_mesh: RenderMesh,
                       tolerance_deg: float = NORMAL_TOLERANCE_DEG) -> np.ndarray:
    """
    Indices of faces whose stored normal points more than ``tolerance_deg``
    away from the normal of the triangle's own vertices (right-hand winding).
    Degenerate triangles and zero-length stored normals are skipped.
    """
    if len(render_mesh.faces) == 0:
        return np.zeros(0, dtype=np.int64)

    triangles = render_mesh.positions[render_mesh.faces.astype(np.int64)]
    geometric, valid = trimesh.triangles.normals(triangles)

    stored = render_mesh.normals[valid].astype(np.float64)
    lengths = np.linalg.norm(stored, axis=1)
    checked = lengths > 0
    cosines = np.einsum(
        "ij,ij->i", stored[checked] / lengths[checked, None], geometric[checked]
    )

    face_ids = np.flatnonzero(valid)[checked]
    return face_ids[cosines < np.cos(np.radians(tolerance_deg))]
