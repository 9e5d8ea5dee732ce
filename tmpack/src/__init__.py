from .tmpack_interface import (TMPConstraintHelper, TMPSceneGraphHelper, TMPackInterface,
                               R2_START_VIRTUAL_JOINT)

__all__ = [
    'TMPConstraintHelper',
    'TMPSceneGraphHelper',
    'TMPackInterface',
    'R2_START_VIRTUAL_JOINT',
]
