#! /usr/bin/env python3

import dataclasses
import json
import re

from typing import Optional
from dataclasses import dataclass, field

import tyro

from labelsynth.synthesize import Synthesizer, SynthesisConfig

from bench.util import Scene, timeout
from bench import scenes

# list scene sets here
SCENE_SETS = scenes.Shapes

@dataclass(frozen=True)
class Run:
    """Run a scene set."""

    set: SCENE_SETS
    """Scene set"""

    synth: Synthesizer = field(kw_only=True, default_factory=Synthesizer)
    """Synthesizer"""

    tests: Optional[str] = None
    """Regular expression of scenes to include (all if '')"""

    exclude: Optional[str] = None
    """Regular expression of scenes to exclude (none if '')"""

    stats: Optional[str] = None
    """Write file with statistics"""

    timeout: Optional[int] = None
    """Set a timeout in seconds per scene (0 for none)"""

    print_prg: bool = False
    """Print the synthesized predicates."""

    print_desc: bool = False
    """Print scene description."""

    def _exec_scene(self, scene: Scene):
        desc = f' ({scene.desc})' if self.print_desc and scene.desc else ''
        print(f'{scene.name}{desc}: ', end='', flush=True)
        # scenes switch on the productions they need
        config = SynthesisConfig(use_color=scene.use_color,
                                 use_placement=scene.use_placement,
                                 use_containment=scene.use_containment)
        synth = dataclasses.replace(self.synth, config=config)
        synth.debug('bench', f'{scene.name}: {len(scene.examples)} examples, {config}')
        labels, groups, stats = synth.synth_all(scene.examples)
        total_time = sum(s['time'] for s in stats.values())
        found = sum(1 for s in stats.values() if s['success'])
        print(f'{total_time / 1e9:.3f}s, solved: {found}/{len(stats)}')
        if self.print_prg:
            for applies in labels + groups:
                for a in applies:
                    print(f'  {a}')
            print('')
        return total_time, stats

    def exec(self):
        exclude = re.compile(self.exclude if self.exclude else "^$")
        include = re.compile(self.tests   if self.tests   else ".*")
        all_stats = {}

        total_time = 0
        for name in sorted(name for name in dir(self.set) if name.startswith('test_')):
            for scene in getattr(self.set, name)():
                if include.match(scene.name) and not exclude.match(scene.name):
                    with timeout(self.timeout):
                        try:
                            time, stats = self._exec_scene(scene)
                            total_time += time
                            all_stats[scene.name] = stats
                        except TimeoutError:
                            total_time += self.timeout * 1e9
                            print('timeout')
                if not self.stats is None:
                    with open(self.stats, 'w') as f:
                        json.dump(all_stats, f, indent=4)
        print(f'total time: {total_time / 1e9:.3f}s')

@dataclass(frozen=True)
class List:
    """List all available scenes in a scene set."""

    set: SCENE_SETS
    """Scene set"""

    def exec(self):
        for name in sorted(name for name in dir(self.set) if name.startswith('test_')):
            for scene in getattr(self.set, name)():
                print(scene.name)


if __name__ == "__main__":
    args = tyro.cli(Run | List)
    args.exec()
