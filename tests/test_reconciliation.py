"""
Tests for client mount reconciliation
"""

import os
import unittest
from dataclasses import replace
from unittest.mock import Mock, patch

from nodemount.drivers import DeviceResolver, MountExecutor, MountProber, VolumeActivator
from nodemount.drivers.base import BaseMountDriver
from nodemount.models.schemas import (
    FINALIZER, ClientMountSpec, ClientMountStatus, DesiredState, MountSpec, MountStatus,
    StatusError, TargetType, UnknownDevice
)
from nodemount.services.mount_service import MountService
from nodemount.services.reconciliation import (
    ReconcileResult, ReconciliationService, needs_state_reset, needs_status_init,
    reset_status
)
from nodemount.utils.exceptions import (
    ActivationFailure, ConflictException, DatabaseException, MountOperationFailure
)
from tests.helpers import FakeRunner, lustre_spec, lvm_spec
from tests.test_resource_store import StoreTestCase, make_resource

NODE = 'compute-01'


class TestStatusHelpers(unittest.TestCase):
    """Test the pure status helpers"""

    def test_needs_status_init(self):
        """Test the status must have one entry per mount"""
        resource = make_resource(mounts=[lustre_spec('/mnt/a'), lustre_spec('/mnt/b')])

        self.assertTrue(needs_status_init(resource))
        self.assertFalse(needs_status_init(reset_status(resource)))
        self.assertFalse(needs_status_init(make_resource(mounts=[])))

    def test_needs_state_reset(self):
        """Test a desired state change is detected per entry"""
        resource = reset_status(make_resource())
        self.assertFalse(needs_state_reset(resource))

        flipped = replace(resource, spec=replace(resource.spec, desired_state=DesiredState.UNMOUNTED))
        self.assertTrue(needs_state_reset(flipped))

    def test_reset_status_clears_everything(self):
        """Test reset drops readiness, messages and the resource error"""
        resource = replace(make_resource(), status=ClientMountStatus(
            mounts=(MountStatus(DesiredState.UNMOUNTED, True, 'old'),),
            error=StatusError('Unmount failed: busy'),
        ))

        status = reset_status(resource).status

        self.assertEqual(status, ClientMountStatus(mounts=(MountStatus(DesiredState.MOUNTED),)))


class TestReconciliationService(StoreTestCase):
    """Test ReconciliationService against a SQLite store"""

    def setUp(self):
        super().setUp()
        self.driver = Mock(spec=BaseMountDriver)
        self.service = ReconciliationService(self.store, MountService(self.driver), requeue_delay=10)

    def _create(self, mounts=None, desired=DesiredState.MOUNTED):
        return self.store.create(make_resource(mounts=mounts, desired=desired))

    def _settle(self, name='scratch', limit=5):
        """Run passes until no immediate requeue is requested"""
        for _ in range(limit):
            result = self.service.reconcile(name, NODE)
            if not result.requeue:
                return result
        self.fail(f"{name} did not settle after {limit} passes")

    def _get(self, name='scratch'):
        return self.store.get(name, NODE)

    def test_new_resource_lifecycle(self):
        """Test init, finalizer and mount passes of a new resource"""
        mounts = [lustre_spec('/mnt/a'), lvm_spec('/mnt/b')]
        self._create(mounts=mounts)

        # Status initialization does no mount work
        self.assertEqual(self.service.reconcile('scratch', NODE), ReconcileResult(requeue=True))
        self.driver.mount.assert_not_called()
        self.assertEqual(self._get().status.mounts, (MountStatus(DesiredState.MOUNTED),) * 2)

        # Finalizer is attached before anything is mounted
        self.assertEqual(self.service.reconcile('scratch', NODE), ReconcileResult(requeue=True))
        self.driver.mount.assert_not_called()
        self.assertIn(FINALIZER, self._get().finalizers)

        # Steady pass mounts every entry
        self.assertEqual(self.service.reconcile('scratch', NODE), ReconcileResult())
        self.assertEqual(self.driver.mount.call_count, 2)
        resource = self._get()
        self.assertEqual([m.ready for m in resource.status.mounts], [True, True])
        self.assertIsNone(resource.status.error)

    def test_steady_pass_without_change_does_not_write(self):
        """Test an unchanged status is not written again"""
        self._create()
        self._settle()
        version = self._get().version

        self.assertEqual(self.service.reconcile('scratch', NODE), ReconcileResult())

        self.assertEqual(self._get().version, version)
        self.assertEqual(self.driver.mount.call_count, 2)

    def test_desired_state_change(self):
        """Test flipping the desired state resets status before unmounting"""
        self._create()
        self._settle()
        resource = self._get()
        self.store.update_spec(replace(
            resource, spec=ClientMountSpec(DesiredState.UNMOUNTED, resource.spec.mounts)
        ))

        self.assertEqual(self.service.reconcile('scratch', NODE), ReconcileResult(requeue=True))
        self.driver.unmount.assert_not_called()
        self.assertEqual(self._get().status.mounts, (MountStatus(DesiredState.UNMOUNTED),))

        self.assertEqual(self.service.reconcile('scratch', NODE), ReconcileResult())
        self.driver.unmount.assert_called_once()
        self.assertEqual(self._get().status.mounts,
                         (MountStatus(DesiredState.UNMOUNTED, ready=True),))

    def test_added_entry_reinitializes_status(self):
        """Test a new mount entry re-initializes the whole status"""
        self._create()
        self._settle()
        resource = self._get()
        mounts = resource.spec.mounts + (lustre_spec('/mnt/extra'),)
        self.store.update_spec(replace(resource, spec=replace(resource.spec, mounts=mounts)))

        self.assertEqual(self.service.reconcile('scratch', NODE), ReconcileResult(requeue=True))
        self.assertEqual(self._get().status.mounts, (MountStatus(DesiredState.MOUNTED),) * 2)

    def test_mount_failure(self):
        """Test a failing entry sets the resource error and asks for a delayed retry"""
        self._create(mounts=[lustre_spec('/mnt/a'), lvm_spec('/mnt/b', fs_type='gfs2')])
        self.driver.mount.side_effect = [
            None, ActivationFailure('lockspace busy', user_message='Client could not access storage'),
        ]

        result = self._settle()

        self.assertEqual(result, ReconcileResult(requeue_after=10))
        status = self._get().status
        self.assertEqual([m.ready for m in status.mounts], [True, False])
        self.assertEqual(status.mounts[1].message, 'Client could not access storage')
        self.assertEqual(status.error, StatusError(
            message='Mount failed: lockspace busy',
            user_message='Client could not access storage',
            fatal=True,
        ))

    def test_error_clears_after_recovery(self):
        """Test a successful pass clears the previous error"""
        self._create()
        self.driver.mount.side_effect = [MountOperationFailure('mount failed'), None]
        self._settle()
        self.assertIsNotNone(self._get().status.error)

        self.assertEqual(self.service.reconcile('scratch', NODE), ReconcileResult())

        self.assertIsNone(self._get().status.error)

    def test_unmount_failure_prefix(self):
        """Test unmount failures are reported as such"""
        self._create(desired=DesiredState.UNMOUNTED)
        self.driver.unmount.side_effect = MountOperationFailure('target is busy')

        self.assertEqual(self._settle(), ReconcileResult(requeue_after=10))
        self.assertEqual(self._get().status.error.message, 'Unmount failed: target is busy')

    def test_teardown(self):
        """Test deletion unmounts everything, then removes the resource"""
        self._create(mounts=[lustre_spec('/mnt/a'), lustre_spec('/mnt/b')])
        self._settle()
        self.store.request_deletion('scratch', NODE)

        self.assertEqual(self.service.reconcile('scratch', NODE), ReconcileResult())

        self.assertEqual(self.driver.unmount.call_count, 2)
        self.assertEqual(self.store.list(NODE), [])

    def test_teardown_failure_keeps_finalizer(self):
        """Test a failed teardown keeps the resource and retries"""
        self._create(mounts=[lustre_spec('/mnt/a'), lustre_spec('/mnt/b')])
        self._settle()
        self.store.request_deletion('scratch', NODE)
        self.driver.unmount.side_effect = [MountOperationFailure('target is busy'), None]

        self.assertEqual(self.service.reconcile('scratch', NODE), ReconcileResult(requeue_after=10))

        resource = self._get()
        self.assertIn(FINALIZER, resource.finalizers)
        self.assertEqual(resource.status.error.message, 'Unmount failed: target is busy')
        self.assertEqual([m.ready for m in resource.status.mounts], [False, True])

        self.driver.unmount.side_effect = None
        self.assertEqual(self.service.reconcile('scratch', NODE), ReconcileResult())
        self.assertEqual(self.store.list(NODE), [])

    def test_teardown_before_finalizer(self):
        """Test a resource deleted before the finalizer was added needs no work"""
        self._create()
        self.service.reconcile('scratch', NODE)
        self.store.request_deletion('scratch', NODE)

        self.assertEqual(self.service.reconcile('scratch', NODE), ReconcileResult())
        self.driver.unmount.assert_not_called()

    def test_empty_mount_list(self):
        """Test a resource without entries settles with nothing to do"""
        self._create(mounts=[])

        self.assertEqual(self._settle(), ReconcileResult())

        self.assertIn(FINALIZER, self._get().finalizers)
        self.driver.mount.assert_not_called()

    def test_missing_resource(self):
        """Test a trigger for a removed resource is a no-op"""
        self.assertEqual(self.service.reconcile('gone', NODE), ReconcileResult())

    def test_status_conflict_is_dropped(self):
        """Test losing a status write race does not fail the pass"""
        self._create()
        self._settle()
        self.driver.mount.side_effect = MountOperationFailure('mount failed')

        with patch.object(self.store, 'update_status', side_effect=ConflictException('race')):
            result = self.service.reconcile('scratch', NODE)

        self.assertEqual(result, ReconcileResult(requeue_after=10))
        self.assertIsNone(self._get().status.error)

    def test_finalizer_conflict_requeues(self):
        """Test a lost finalizer race asks for another pass"""
        self._create()
        self.service.reconcile('scratch', NODE)

        with patch.object(self.store, 'update_finalizers', side_effect=ConflictException('race')):
            self.assertEqual(self.service.reconcile('scratch', NODE), ReconcileResult(requeue=True))

        self.assertEqual(self._get().finalizers, ())

    def test_reconcile_all(self):
        """Test every resource of the node gets a pass"""
        self.store.create(make_resource(name='alpha', mounts=[]))
        self.store.create(make_resource(name='beta'))
        self.store.create(make_resource(name='other', node='compute-02'))

        results = self.service.reconcile_all(NODE)

        self.assertEqual(set(results), {'alpha', 'beta'})
        self.assertEqual(results['alpha'], ReconcileResult(requeue=True))

    def test_reconcile_all_isolates_failures(self):
        """Test one broken resource does not stop the others"""
        self.store.create(make_resource(name='alpha'))
        self.store.create(make_resource(name='beta'))
        original = self.service.reconcile

        def flaky(name, node):
            if name == 'alpha':
                raise DatabaseException('connection lost')
            return original(name, node)

        with patch.object(self.service, 'reconcile', side_effect=flaky):
            results = self.service.reconcile_all(NODE)

        self.assertEqual(results['alpha'], ReconcileResult(requeue_after=10))
        self.assertEqual(results['beta'], ReconcileResult(requeue=True))


class TestReconcileOnHost(StoreTestCase):
    """Test full passes through the real executor against a fake host"""

    def setUp(self):
        super().setUp()
        self.host = FakeRunner(volumes={('vg0', 'lv0'): False})
        activator = VolumeActivator(self.host)
        executor = MountExecutor(self.host, MountProber(self.host),
                                 DeviceResolver(activator), activator)
        self.service = ReconciliationService(self.store, MountService(executor))
        self.mounts = [
            lustre_spec(os.path.join(self.temp_dir, 'a')),
            MountSpec(os.path.join(self.temp_dir, 'b'), TargetType.DIRECTORY, 'nfs',
                      UnknownDevice('nfs')),
            lvm_spec(os.path.join(self.temp_dir, 'c'), fs_type='gfs2'),
        ]

    def _settle(self):
        for _ in range(3):
            result = self.service.reconcile('scratch', NODE)
        return result

    def test_unresolvable_entry_does_not_block_others(self):
        self.store.create(make_resource(mounts=self.mounts))

        self.assertEqual(self._settle(), ReconcileResult(requeue_after=10))

        status = self.store.get('scratch', NODE).status
        self.assertEqual([m.ready for m in status.mounts], [True, False, True])
        self.assertEqual(status.error.message, "Mount failed: Invalid device type: 'nfs'")
        self.assertEqual(len(self.host.mounted), 2)
        self.assertTrue(self.host.volumes[('vg0', 'lv0')])

    @patch('nodemount.drivers.mount.os.rmdir')
    def test_teardown_of_clustered_volume(self, mock_rmdir):
        """Test teardown releases the shared volume even when the target stays behind"""
        self.store.create(make_resource(mounts=[self.mounts[2]]))
        self._settle()
        self.assertEqual(len(self.host.mounted), 1)
        mock_rmdir.side_effect = OSError('directory not empty')
        self.store.request_deletion('scratch', NODE)
        self.host.commands.clear()

        self.assertEqual(self.service.reconcile('scratch', NODE), ReconcileResult())

        path = self.mounts[2].mount_path
        self.assertEqual(self.host.commands, [
            'mount',
            f'umount {path}',
            'lvs --noheadings --separator  ',
            'vgchange --activate n vg0',
            'vgchange --lockstop vg0',
        ])
        self.assertEqual(self.store.list(NODE), [])


if __name__ == '__main__':
    unittest.main()
