"""Events Domain - Event lifecycle: create, edit, cancel and calendar listing"""
