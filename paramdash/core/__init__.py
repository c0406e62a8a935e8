# Parameter model for the dashboard (no NiceGUI, no network)
# - values:     typed values, type inference from untyped JSON, edit coercion
# - parameters: immutable flat dotted-name parameter sets
# - hierarchy:  group a set into a tree of groups/leaves and flatten it back
# - diff:       leaf-by-leaf comparison of two snapshots
# - selection:  persisted "selected for save" flags
