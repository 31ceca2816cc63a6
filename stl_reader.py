"""
STL -> indexed mesh reader (numpy-stl backed)
"""

from dataclasses import dataclass

import numpy as np
from stl import mesh


class StlViewerError(Exception):
    """Base class for every fatal error the viewer reports."""


class FileOpenError(StlViewerError):
    pass


class ParseError(StlViewerError):
    pass


@dataclass
class SourceMesh:
    """
    Indexed mesh as read from disk: unique vertices, three wide vertex
    references per face and the normal stored with each face.
    """
    vertices: np.ndarray
    faces: np.ndarray
    normals: np.ndarray


####################################
# STL -> SourceMesh
####################################
def read_stl(path: str) -> SourceMesh:
    try:
        # Keep the normals written in the file instead of recomputing them
        stl_mesh = mesh.Mesh.from_file(path, calculate_normals=False)
    except OSError as e:
        raise FileOpenError(f"Could not open {path}: {e}") from e
    except Exception as e:
        raise ParseError(f"Could not parse {path} as STL: {e}") from e

    if len(stl_mesh.vectors) == 0:
        raise ParseError(f"Mesh is empty or failed to load: {path}")

    all_points = stl_mesh.vectors.reshape(-1, 3)
    unique_points, inverse = np.unique(all_points, axis=0, return_inverse=True)
    faces = inverse.reshape(-1, 3).astype(np.int64)

    return SourceMesh(
        vertices=unique_points,
        faces=faces,
        normals=np.array(stl_mesh.normals, dtype=np.float32),
    )
