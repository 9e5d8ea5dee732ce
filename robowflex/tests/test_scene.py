#!/usr/bin/env python3
"""
Unit Tests for Planning Scene

Author: Robot Control Team
"""

import os
import sys
import unittest

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from robowflex.src.geometry import ShapeType, make_box, make_sphere
from robowflex.src.scene import Scene, SceneError
from robowflex.src.tf import create_pose

CONFIG_DIR = os.path.join(os.path.dirname(__file__), '..', 'config')


class TestScene(unittest.TestCase):
    """Test cases for Scene."""

    def setUp(self):
        self.scene = Scene(name="test_scene")
        self.scene.add_collision_object("box", make_box([0.1, 0.2, 0.3]), create_pose(1.0, 0.0, 0.5))

    def test_add_and_get(self):
        self.assertTrue(self.scene.has_object("box"))
        self.assertEqual(self.scene.get_object_names(), ["box"])
        np.testing.assert_array_equal(self.scene.get_object_pose("box")[:3, 3], [1.0, 0.0, 0.5])
        self.assertEqual(self.scene.get_object("box").geometry.shape, ShapeType.BOX)

    def test_default_pose(self):
        self.scene.add_collision_object("ball", make_sphere(0.1))
        np.testing.assert_array_equal(self.scene.get_object_pose("ball"), np.eye(4))

    def test_invalid_pose(self):
        with self.assertRaises(SceneError):
            self.scene.add_collision_object("bad", make_sphere(0.1), np.eye(3))

    def test_pose_is_copied(self):
        pose = self.scene.get_object_pose("box")
        pose[0, 3] = 5.0
        self.assertEqual(self.scene.get_object_pose("box")[0, 3], 1.0)

    def test_remove(self):
        self.scene.remove_collision_object("box")
        self.assertFalse(self.scene.has_object("box"))
        with self.assertRaises(SceneError):
            self.scene.remove_collision_object("box")

    def test_move(self):
        self.scene.move_object("box", create_pose(0.0, 1.0, 0.0))
        np.testing.assert_array_equal(self.scene.get_object_pose("box")[:3, 3], [0.0, 1.0, 0.0])

    def test_attach_and_detach(self):
        self.scene.attach_object("box", "gripper_link")
        self.assertEqual(self.scene.get_attached_objects(), {"box": "gripper_link"})

        with self.assertRaises(SceneError):
            self.scene.attach_object("box", "other_link")
        with self.assertRaises(SceneError):
            self.scene.move_object("box", np.eye(4))

        self.scene.detach_object("box", create_pose(2.0, 0.0, 0.0))
        self.assertEqual(self.scene.get_attached_objects(), {})
        self.assertEqual(self.scene.get_object_pose("box")[0, 3], 2.0)

        with self.assertRaises(SceneError):
            self.scene.detach_object("box")

    def test_validity_checker(self):
        self.assertTrue(self.scene.is_state_valid({'j1': 5.0}))

        calls = []

        def checker(scene, state):
            calls.append(scene)
            return state['j1'] < 1.0

        self.scene.set_state_validity_checker(checker)
        self.assertTrue(self.scene.is_state_valid({'j1': 0.5}))
        self.assertFalse(self.scene.is_state_valid({'j1': 1.5}))
        self.assertIs(calls[0], self.scene)

    def test_deep_copy(self):
        copied = self.scene.deep_copy()
        copied.move_object("box", np.eye(4))
        self.assertEqual(self.scene.get_object_pose("box")[0, 3], 1.0)

    def test_to_dict(self):
        self.scene.attach_object("box", "gripper_link")
        data = self.scene.to_dict()
        self.assertEqual(data['name'], "test_scene")
        entry = data['collision_objects'][0]
        self.assertEqual(entry['id'], "box")
        self.assertEqual(entry['shape'], {'type': 'box', 'dimensions': [0.1, 0.2, 0.3]})
        self.assertEqual(entry['attached_link'], "gripper_link")
        np.testing.assert_allclose(entry['pose']['position'], [1.0, 0.0, 0.5])

        rebuilt = Scene.from_dict(data)
        self.assertEqual(rebuilt.get_attached_objects(), {"box": "gripper_link"})


class TestSceneFromYAML(unittest.TestCase):
    """Test cases for loading the bundled scene."""

    def test_table_scene(self):
        scene = Scene.from_yaml_file(os.path.join(CONFIG_DIR, 'table_scene.yaml'))
        self.assertEqual(scene.name, "table_scene")
        self.assertEqual(scene.get_object_names(), ["table", "can"])
        self.assertEqual(scene.get_object("can").geometry.shape, ShapeType.CYLINDER)
        np.testing.assert_allclose(scene.get_object_pose("table")[:3, 3], [0.8, 0.0, 0.72])

    def test_missing_file(self):
        with self.assertRaises(SceneError):
            Scene.from_yaml_file(os.path.join(CONFIG_DIR, 'missing.yaml'))

    def test_entry_without_shape(self):
        with self.assertRaises(SceneError):
            Scene.from_dict({'collision_objects': [{'id': 'thing'}]})


if __name__ == '__main__':
    unittest.main()
