#! /usr/bin/env python3

import json
import re

from pathlib import Path
from typing import Optional
from dataclasses import dataclass, field

import tyro

from labelsynth.example import load_examples
from labelsynth.synthesize import Synthesizer, precise_library, group_library, \
                                  has_precise, has_group
from labelsynth import grammar as g

@dataclass(frozen=True)
class Run:
    """Synthesize labeling predicates for the examples in a JSON file."""

    examples: Path
    """JSON file with the labeled examples."""

    synth: Synthesizer = field(kw_only=True, default_factory=Synthesizer)
    """Synthesizer"""

    labels: Optional[str] = None
    """Regular expression of labels and groups to synthesize (all if '')"""

    stats: Optional[str] = None
    """Write file with statistics"""

    def exec(self):
        examples = load_examples(self.examples)
        include  = re.compile(self.labels if self.labels else ".*")
        targets  = [ (l, has_precise, g.LabelApply) for l in precise_library(examples) ] \
                 + [ (l, has_group,   g.GroupApply) for l in group_library(examples) ]
        all_stats = {}
        firsts    = []
        total_time = 0
        for target, applied, action in targets:
            if not include.match(target.name):
                continue
            print(f'{target.name}: ', end='', flush=True)
            applies, stats = self.synth.synth_label(examples, target, applied, action)
            total_time += stats['time']
            all_stats[target.name] = stats
            if applies:
                firsts.append(applies[0])
                print(f'{stats["time"] / 1e9:.3f}s, cost: {stats["cost"]}')
                for a in applies:
                    print(f'  {a}')
            else:
                print(f'{stats["time"] / 1e9:.3f}s, no predicate found')
        if firsts:
            print(g.Program(tuple(firsts)))
        if not self.stats is None:
            with open(self.stats, 'w') as f:
                json.dump(all_stats, f, indent=4)
        print(f'total time: {total_time / 1e9:.3f}s')

@dataclass(frozen=True)
class List:
    """List the labels and groups that occur in a JSON example file."""

    examples: Path
    """JSON file with the labeled examples."""

    def exec(self):
        examples = load_examples(self.examples)
        for l in precise_library(examples):
            print(f'label {l.name}')
        for l in group_library(examples):
            print(f'group {l.name}')

if __name__ == "__main__":
    args = tyro.cli(Run | List)
    args.exec()
