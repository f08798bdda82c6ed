# %% [markdown]
# # Attractor landscapes of regulatory networks
#
# This tutorial walks through the three analysis modes of boolscape on a
# small regulatory motif.
#
# You will learn how to:
#
# - write and validate Boolean update rules,
# - compute the attractors of a rule-based network and their basins,
# - analyze the same wiring as a weighted-threshold network,
# - estimate steady-state activation probabilities under noise,
# - model knock-out and knock-in interventions.
#
# ## Setup

# %%
import boolscape


# %% [markdown]
# ## Writing rules
#
# A rule set has one line `target = expression` per node. Expressions use
# `NOT`/`!`, `AND`/`&&`/`*`, `OR`/`||`/`+` as well as `XOR`, `NAND` and `NOR`.
# Validation reports every problem at once, with line numbers.

# %%
broken = """
x = y && z
w z = 1
"""
for message in boolscape.validate_rules(broken):
    print(message)


# %% [markdown]
# A valid rule set compiles to one `CompiledRule` per line. Each rule can be
# inspected as a truth table or as a minimized logical expression.

# %%
rules = """
# toggle switch with an external signal
Signal = Signal
GeneA = Signal || !GeneB
GeneB = !GeneA
"""
compiled = boolscape.compile_rules(rules)
for rule in compiled:
    print(rule, "  ->  ", rule.to_logical())

print(compiled[1].to_truth_table().to_string())


# %% [markdown]
# ## Deterministic analysis
#
# Under synchronous updating every state has exactly one successor, so every
# trajectory ends in a fixed point or a limit cycle. For small networks all
# $2^N$ states are explored.

# %%
nodes = ['Signal', 'GeneA', 'GeneB']
result = boolscape.perform_deterministic_analysis(nodes, rules)
print(result)
print(result.to_dataframe().to_string())


# %% [markdown]
# The basin of an attractor is the set of states from which it is reached.
# Basin sizes sum to the number of explored states.

# %%
for attractor in result.attractors:
    print(attractor.kind, [result.codec.format_state(s)['binary'] for s in attractor.states],
          attractor.basin_size, f"{attractor.basin_share:.2f}")


# %% [markdown]
# Interventions clamp nodes: a knock-out fixes a node at 0 and a knock-in at 1.

# %%
knockout = boolscape.perform_deterministic_analysis(nodes, rules, controls={'GeneB': 0})
print([result.codec.format_state(s)['binary'] for att in knockout for s in att.states])


# %% [markdown]
# ## Weighted-threshold analysis
#
# The same motif can be described by weighted edges. A node becomes active
# when the weighted sum of its active regulators plus its bias exceeds the
# threshold, and inactive when it falls below it.

# %%
edges = [('Signal', 'GeneA', 1.0), ('GeneB', 'GeneA', -1.0), ('GeneA', 'GeneB', -1.0)]
weighted_nodes = ['Signal', {'id': 'GeneA', 'bias': 0.5}, {'id': 'GeneB', 'bias': 1.0}]
weighted = boolscape.perform_weighted_analysis(weighted_nodes, edges, tie_behavior='hold')
for attractor in weighted:
    print(attractor.to_dict(weighted.codec))


# %% [markdown]
# ## Large networks
#
# When $2^N$ exceeds the state cap, a bounded number of random initial
# states is explored instead. The result is then marked as truncated and a
# `CapacityWarning` is emitted.

# %%
ring = [f"x{i} = x{(i - 1) % 20}" for i in range(20)]
sampled = boolscape.perform_deterministic_analysis([f"x{i}" for i in range(20)], ring,
                                                   state_cap=1000, rng=42)
print(sampled.truncated, sampled.explored_state_count, sampled.total_state_space)
print(sampled.warnings[0])


# %% [markdown]
# ## Probabilistic analysis
#
# Under noise, the relaxation solver estimates the probability that each
# node is active. The potential energy $-\ln p$ is low for nodes that are
# likely active.

# %%
probabilistic = boolscape.perform_probabilistic_analysis(weighted_nodes, edges, noise=0.25)
print(probabilistic)
print(probabilistic.to_dataframe().to_string())

# %%
for noise in [0.05, 0.25, 1.0, 10.0]:
    p = boolscape.perform_probabilistic_analysis(weighted_nodes, edges, noise=noise).probabilities
    print(noise, {node_id: round(value, 3) for node_id, value in p.items()})
