# Service layer for the parameter dashboard
# - storage:     durable key-value stores (NiceGUI general storage, in-memory)
# - ros_client:  rosbridge client for parameter services and param_manager history
# - mock_client: in-memory robot used in mock mode and tests
# - tuning:      fetch/edit/save flow behind the Parameters tab
# - history:     list/preview/compare/restore/delete behind the History tab
