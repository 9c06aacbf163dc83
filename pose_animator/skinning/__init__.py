from .deformer import SkinningEngine, blend_matrix, deform, skin_points

__all__ = ['SkinningEngine', 'blend_matrix', 'deform', 'skin_points']
