import numpy as np
import onnx
import pytest
from onnx import TensorProto, helper, numpy_helper

from conftest import make_image_bytes
from config import set_config
from modules.face_engine import FaceDetector, FaceEmbedder, InferenceError, ModelLoadError
from modules.face_engine.graph import OnnxGraph, load_onnx_graph
from modules.model_registry import ModelRegistry


def _serialize(nodes, inputs, outputs) -> bytes:
    graph = helper.make_graph(nodes, "test", inputs, outputs)
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid("", 13)])
    model.ir_version = 8
    onnx.checker.check_model(model)
    return model.SerializeToString()


def _embedder_model(shape=(1, 3, 140, 140)) -> bytes:
    return _serialize(
        [helper.make_node("Flatten", ["input"], ["embedding"], axis=1)],
        [helper.make_tensor_value_info("input", TensorProto.FLOAT, list(shape))],
        [helper.make_tensor_value_info("embedding", TensorProto.FLOAT, None)],
    )


def _detector_model() -> bytes:
    scores = np.array([[[0.9, 0.1], [0.3, 0.7]]], dtype=np.float32)
    boxes = np.array([[[0.1, 0.1, 0.2, 0.2], [0.3, 0.3, 0.6, 0.6]]], dtype=np.float32)
    return _serialize(
        [
            helper.make_node(
                "Constant", [], ["scores"], value=numpy_helper.from_array(scores)
            ),
            helper.make_node(
                "Constant", [], ["boxes"], value=numpy_helper.from_array(boxes)
            ),
            helper.make_node("Identity", ["input"], ["echo"]),
        ],
        [helper.make_tensor_value_info("input", TensorProto.FLOAT, [1, 3, 240, 320])],
        [
            helper.make_tensor_value_info("scores", TensorProto.FLOAT, [1, 2, 2]),
            helper.make_tensor_value_info("boxes", TensorProto.FLOAT, [1, 2, 4]),
            helper.make_tensor_value_info("echo", TensorProto.FLOAT, [1, 3, 240, 320]),
        ],
    )


@pytest.fixture
def onnx_registry(tmp_path):
    det_path = tmp_path / "det.onnx"
    det_path.write_bytes(_detector_model())
    set_config({})
    reg = ModelRegistry(
        sources={"detector": det_path, "embedder": _embedder_model()}
    )
    reg.initialize()
    return reg


def test_load_onnx_graph_reports_io():
    graph = load_onnx_graph(_embedder_model())
    assert isinstance(graph, OnnxGraph)
    assert graph.input_name == "input"
    assert graph.input_shape == (1, 3, 140, 140)


def test_unknown_optimization_level():
    with pytest.raises(ValueError):
        load_onnx_graph(_embedder_model(), optimization="turbo")


def test_onnx_detect_end_to_end(onnx_registry):
    box, confidence = FaceDetector(onnx_registry).detect(make_image_bytes())
    assert confidence == pytest.approx(0.7)
    assert box.as_tuple() == pytest.approx((0.3, 0.3, 0.6, 0.6))


def test_onnx_embed_end_to_end(onnx_registry):
    vec = FaceEmbedder(onnx_registry).embed(make_image_bytes(color=(255, 0, 0)))
    assert vec.shape == (58800,)
    # Channel-major flattening: all R samples come first.
    assert np.allclose(vec[:19600], 1.0)
    assert np.allclose(vec[19600:], 0.0)


def test_malformed_model_raises_model_load_error():
    reg = ModelRegistry(
        sources={"detector": b"definitely not protobuf", "embedder": _embedder_model()}
    )
    with pytest.raises(ModelLoadError) as exc:
        reg.initialize()
    assert exc.value.name == "detector"
    assert not reg.ready


def test_unsupported_operator_raises_model_load_error():
    graph = helper.make_graph(
        [helper.make_node("NoSuchOperator", ["input"], ["out"])],
        "test",
        [helper.make_tensor_value_info("input", TensorProto.FLOAT, [1, 3, 140, 140])],
        [helper.make_tensor_value_info("out", TensorProto.FLOAT, None)],
    )
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid("", 13)])
    model.ir_version = 8
    reg = ModelRegistry(
        sources={"detector": _detector_model(), "embedder": model.SerializeToString()}
    )
    with pytest.raises(ModelLoadError) as exc:
        reg.initialize()
    assert exc.value.name == "embedder"


def test_run_rejects_mismatched_tensor_shape():
    graph = load_onnx_graph(_embedder_model())
    with pytest.raises(ValueError, match="expects shape"):
        graph.run(np.zeros((1, 3, 112, 112), dtype=np.float32))


def test_symbolic_batch_dimension_accepts_any_size():
    graph = load_onnx_graph(_embedder_model(("batch", 3, 140, 140)))
    (out,) = graph.run(np.ones((1, 3, 140, 140), dtype=np.float32))
    assert out.shape == (1, 58800)


def test_embedder_with_wrong_input_size_raises_inference_error():
    reg = ModelRegistry(
        sources={
            "detector": _detector_model(),
            "embedder": _embedder_model((1, 3, 112, 112)),
        }
    )
    reg.initialize()
    with pytest.raises(InferenceError, match="expects shape"):
        FaceEmbedder(reg).embed(make_image_bytes())
