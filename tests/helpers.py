"""Test doubles for host commands"""

from nodemount.models.schemas import (
    LustreDevice, LVMDevice, MountSpec, TargetType
)
from nodemount.utils.exceptions import CommandError


class FakeRunner:
    """
    Records commands instead of running them.

    Keeps a small model of the host so that probes see the effect of earlier
    commands: mount/umount update the mount table and vgchange updates the
    activation state reported by lvs. Canned outputs and failures are keyed
    by the full command line or by the program name.
    """

    def __init__(self, mounted=None, volumes=None, outputs=None, failures=None, mock=False):
        self.mounted = dict(mounted or {})
        self.volumes = dict(volumes or {})
        self.outputs = dict(outputs or {})
        self.failures = dict(failures or {})
        self.mock = mock
        self.commands = []

    def run(self, cmd):
        line = ' '.join(cmd)
        self.commands.append(line)

        for key in (line, cmd[0]):
            if key in self.failures:
                raise CommandError(cmd, 1, self.failures[key])
        for key in (line, cmd[0]):
            if key in self.outputs:
                return self.outputs[key]

        if cmd == ['mount']:
            return ''.join(f"{dev} on {path} type {fs} (rw)\n"
                           for path, (dev, fs) in self.mounted.items())
        if cmd[0] == 'mount':
            self.mounted[cmd[4]] = (cmd[3], cmd[2])
        elif cmd[0] == 'umount':
            self.mounted.pop(cmd[1], None)
        elif cmd[0] == 'lvs':
            return ''.join(f"  {lv} {vg} -wi-{'a' if active else '-'}----- 10.00g\n"
                           for (vg, lv), active in self.volumes.items())
        elif cmd[0] == 'vgchange' and cmd[1] == '--activate':
            for vg, lv in list(self.volumes):
                if vg == cmd[3]:
                    self.volumes[(vg, lv)] = cmd[2] != 'n'
        return ''


def lustre_spec(path, options='', target_type=TargetType.DIRECTORY):
    return MountSpec(
        mount_path=path,
        target_type=target_type,
        fs_type='lustre',
        device=LustreDevice('10.0.0.1@tcp:10.0.0.2@tcp', 'scratch'),
        options=options,
    )


def lvm_spec(path, fs_type='xfs', vg='vg0', lv='lv0', target_type=TargetType.DIRECTORY):
    return MountSpec(
        mount_path=path,
        target_type=target_type,
        fs_type=fs_type,
        device=LVMDevice(vg, lv),
    )


def spec_dict(path, device=None, **extra):
    data = {
        'mount_path': path,
        'target_type': 'directory',
        'fs_type': 'lustre',
        'device': device or {
            'type': 'lustre',
            'lustre': {'mgs_addresses': '10.0.0.1@tcp', 'file_system_name': 'scratch'},
        },
    }
    data.update(extra)
    return data
