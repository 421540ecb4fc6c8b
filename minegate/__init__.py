"""Watcher que arranca y apaga bajo demanda una instancia EC2 con un servidor de Minecraft."""
