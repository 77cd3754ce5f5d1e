"""Cross-device clustering and learned recommendations."""

from .kmeans import kmeans, kmeans_step
from .learner import CrossDeviceLearner, similarity
from .model import DeviceCluster, LearningModel, create_initial_model

__all__ = [
    'kmeans',
    'kmeans_step',
    'CrossDeviceLearner',
    'similarity',
    'DeviceCluster',
    'LearningModel',
    'create_initial_model',
]
