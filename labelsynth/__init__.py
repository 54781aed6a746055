from z3 import set_option

from labelsynth.synthesize import Synthesizer, SynthesisConfig
from labelsynth.example import Example, load_examples

set_option(max_args=10000000, max_lines=1000000, max_depth=10000000, max_visited=1000000)
