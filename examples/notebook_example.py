from frame_player import JupyterViewer, create_player, path_to_mrl

# Run in a notebook cell
player = create_player(["--pixel-format=I420"])
player.load(path_to_mrl("testing/resources/sample.mp4"), start_playing=True)
JupyterViewer(player).show()
